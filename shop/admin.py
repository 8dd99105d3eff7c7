from django.contrib import admin

from shop.infra.models import (
    CategoryORM,
    CustomerORM,
    IdempotencyKey,
    OrderItemORM,
    OrderORM,
    ProductORM,
)


@admin.register(CustomerORM)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "phone", "created_at")
    search_fields = ("name", "email")


@admin.register(CategoryORM)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "description")
    search_fields = ("name",)


@admin.register(ProductORM)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "price", "stock", "updated_at")
    list_filter = ("categories",)
    search_fields = ("name",)
    filter_horizontal = ("categories",)


class OrderItemInline(admin.TabularInline):
    model = OrderItemORM
    extra = 0
    readonly_fields = ("product", "type", "quantity", "unit_price", "subtotal")
    can_delete = False


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "status", "total_amount", "order_date", "updated_at")
    list_filter = ("status", "order_date")
    search_fields = ("id", "customer__name", "customer__email")
    # Status and stock move only through OrderService.
    readonly_fields = ("customer", "status", "total_amount", "order_date", "updated_at")
    inlines = [OrderItemInline]


@admin.register(IdempotencyKey)
class IdempotencyAdmin(admin.ModelAdmin):
    list_display = ("key", "operation", "response_status", "created_at")
    list_filter = ("operation", "created_at")
    search_fields = ("key",)
