from django.urls import path
from .views import SyncStatusView, GoOnlineView, GoOfflineView, FlushOutboxView, RefreshView

app_name = 'storage'

urlpatterns = [
    path('status/', SyncStatusView.as_view(), name='status'),
    path('online/', GoOnlineView.as_view(), name='online'),
    path('offline/', GoOfflineView.as_view(), name='offline'),
    path('flush/', FlushOutboxView.as_view(), name='flush'),
    path('refresh/', RefreshView.as_view(), name='refresh'),
]
