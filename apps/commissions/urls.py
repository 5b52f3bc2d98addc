from django.urls import path
from .views import CommissionListView, CommissionReportView, CommissionRecomputeView

app_name = 'commissions'

urlpatterns = [
    path('', CommissionListView.as_view(), name='list'),
    path('report/', CommissionReportView.as_view(), name='report'),
    path('recompute/', CommissionRecomputeView.as_view(), name='recompute'),
]
