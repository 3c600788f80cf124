from django.urls import path
from .views import AdminOrdersCollectionView, AdminOrderDetailView

app_name = "orders-admin"

urlpatterns = [
    path("", AdminOrdersCollectionView.as_view(), name="collection"),
    path("<uuid:oid>/", AdminOrderDetailView.as_view(), name="detail"),
]
