from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import RecycleBinViewSet

app_name = 'recycle_bin'

router = SimpleRouter()
router.register(r'', RecycleBinViewSet, basename='trash')

urlpatterns = [
    path('', include(router.urls)),
]
