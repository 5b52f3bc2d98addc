from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    PatientViewSet,
    ProfessionalViewSet,
    ServiceViewSet,
    CategoryViewSet,
    StaffUserViewSet,
    AdmissionViewSet,
    RoomViewSet,
    ExpenseViewSet,
)

app_name = 'registry'

router = DefaultRouter()
router.register(r'patients', PatientViewSet, basename='patient')
router.register(r'professionals', ProfessionalViewSet, basename='professional')
router.register(r'services', ServiceViewSet, basename='service')
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'users', StaffUserViewSet, basename='user')
router.register(r'admissions', AdmissionViewSet, basename='admission')
router.register(r'rooms', RoomViewSet, basename='room')
router.register(r'expenses', ExpenseViewSet, basename='expense')

urlpatterns = [
    path('', include(router.urls)),
]
