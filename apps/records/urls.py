from django.urls import path
from .views import RecordCollectionView, RecordDetailView

app_name = 'records'

urlpatterns = [
    path('<str:entity_type>/', RecordCollectionView.as_view(), name='collection'),
    path('<str:entity_type>/<str:record_id>/', RecordDetailView.as_view(), name='detail'),
]
