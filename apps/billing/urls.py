from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import BillViewSet, DailySummaryView

app_name = 'billing'

router = DefaultRouter()
router.register(r'bills', BillViewSet, basename='bill')

urlpatterns = [
    path('summary/', DailySummaryView.as_view(), name='summary'),
    path('', include(router.urls)),
]
