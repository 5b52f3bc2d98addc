from django.urls import path
from .views import ExportView, ImportView

app_name = 'backup'

urlpatterns = [
    path('export/', ExportView.as_view(), name='export'),
    path('import/', ImportView.as_view(), name='import'),
]
