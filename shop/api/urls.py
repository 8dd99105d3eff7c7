from django.urls import path

from shop.api import views

urlpatterns = [
    path("orders", views.orders_collection, name="orders"),
    path("orders/<int:order_id>", views.order_detail, name="order-detail"),
    path("customers", views.customers_collection, name="customers"),
    path("customers/<int:customer_id>", views.customer_detail, name="customer-detail"),
    path("customers/<int:customer_id>/orders", views.customer_orders, name="customer-orders"),
    path("categories", views.categories_collection, name="categories"),
    path("categories/<int:category_id>", views.category_detail, name="category-detail"),
    path("products", views.products_collection, name="products"),
    path("products/<int:product_id>", views.product_detail, name="product-detail"),
]
