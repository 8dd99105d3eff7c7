"""
URL configuration for storefront project.
"""
from django.contrib import admin
from django.urls import include, path

from shop.api import views

urlpatterns = [
    path("", views.index, name="index"),
    path("health", views.health, name="health"),
    path("admin/", admin.site.urls),
    path("api/", include("shop.api.urls")),
]

handler404 = "shop.api.views.not_found"
handler500 = "shop.api.views.server_error"
