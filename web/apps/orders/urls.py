from django.urls import path
from .views import InvoiceView, OrdersCollectionView, RetrieveOrderView, TrackOrderView

app_name = "orders"

urlpatterns = [
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST create
    path("<uuid:oid>/", RetrieveOrderView.as_view(), name="orders-detail"),
    path("<uuid:oid>/track/", TrackOrderView.as_view(), name="orders-track"),
    path("<uuid:oid>/invoice/", InvoiceView.as_view(), name="orders-invoice"),
]
