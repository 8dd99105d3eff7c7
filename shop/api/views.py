"""
REST views for customers, catalog and orders.

Domain errors raised here are turned into JSON responses by
``shop.api.middleware.RequestLoggingMiddleware``.
"""
import hashlib
import json
import logging

from django.db import DatabaseError, connection, transaction
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from shop.api.serializers import (
    category_to_dict,
    customer_to_dict,
    order_to_dict,
    parse_date_param,
    parse_id,
    parse_json_body,
    parse_order_draft,
    parse_product_payload,
    product_to_dict,
)
from shop.domain.errors import DuplicateRequestError, ValidationError
from shop.infra.repositories import IdempotencyRepository
from shop.services import CategoryService, CustomerService, OrderService, ProductService

logger = logging.getLogger(__name__)

CREATE_ORDER = "CREATE_ORDER"


@require_GET
def index(request):
    return JsonResponse({"message": "Storefront API"})


@require_GET
def health(request):
    """Liveness probe that also checks the database."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError as e:
        logger.error("health_check_failed", extra={"error": str(e)})
        return JsonResponse({"status": "unavailable"}, status=503)
    return JsonResponse({"status": "ok"})


def not_found(request, exception=None):
    return JsonResponse(
        {
            "error": {
                "code": "NOT_FOUND",
                "message": f"Endpoint {request.method} {request.path} not found",
            }
        },
        status=404,
    )


def server_error(request):
    return JsonResponse(
        {"error": {"code": "INTERNAL_ERROR", "message": "An internal error occurred"}},
        status=500,
    )


# Orders

@csrf_exempt
@require_http_methods(["GET", "POST"])
def orders_collection(request):
    service = OrderService()
    if request.method == "POST":
        return _create_order(request, service)

    params = request.GET
    customer_id = params.get("customerId")
    orders = service.list_orders(
        customer_id=parse_id(customer_id, "customerId") if customer_id else None,
        status=params.get("status") or None,
        date_from=parse_date_param(params.get("from"), "from"),
        date_to=parse_date_param(params.get("to"), "to", end_of_day=True),
    )
    return JsonResponse([order_to_dict(o) for o in orders], safe=False)


def _create_order(request, service: OrderService):
    """Create order, replaying stored responses for a reused Idempotency-Key."""
    data = parse_json_body(request)
    idempotency_key = request.headers.get("Idempotency-Key")
    if not idempotency_key:
        customer_id, items = parse_order_draft(data)
        order = service.create_order(customer_id, items)
        return JsonResponse(order_to_dict(order), status=201)

    request_hash = _create_request_hash(data)
    idempotency_repo = IdempotencyRepository()
    with transaction.atomic():
        existing = idempotency_repo.get(idempotency_key, CREATE_ORDER)
        if existing:
            if existing.request_hash != request_hash:
                logger.warning(
                    "idempotency_key_conflict",
                    extra={
                        "request_id": getattr(request, "request_id", None),
                        "idempotency_key": idempotency_key[:8] + "...",
                    },
                )
                raise DuplicateRequestError("Idempotency key already used with different request")
            logger.info(
                "idempotent_request_cached",
                extra={
                    "request_id": getattr(request, "request_id", None),
                    "idempotency_key": idempotency_key[:8] + "...",
                    "operation": CREATE_ORDER,
                },
            )
            return JsonResponse(existing.response_payload, status=existing.response_status)

        customer_id, items = parse_order_draft(data)
        payload = order_to_dict(service.create_order(customer_id, items))
        idempotency_repo.save(
            key=idempotency_key,
            operation=CREATE_ORDER,
            request_hash=request_hash,
            response_status=201,
            response_payload=payload,
        )
    return JsonResponse(payload, status=201)


def _create_request_hash(data: dict) -> str:
    """Create hash of request for deduplication."""
    content = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(content.encode()).hexdigest()


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def order_detail(request, order_id: int):
    service = OrderService()
    if request.method == "GET":
        return JsonResponse(order_to_dict(service.get_order(order_id)))

    if request.method == "PUT":
        data = parse_json_body(request)
        if not data.get("status"):
            raise ValidationError("status is required")
        order = service.update_order_status(order_id, data["status"])
        return JsonResponse(order_to_dict(order))

    service.delete_order(order_id)
    return HttpResponse(status=204)


# Customers

@csrf_exempt
@require_http_methods(["GET", "POST"])
def customers_collection(request):
    service = CustomerService()
    if request.method == "POST":
        customer = service.create_customer(parse_json_body(request))
        return JsonResponse(customer_to_dict(customer), status=201)

    email = request.GET.get("email")
    if email:
        return JsonResponse(customer_to_dict(service.get_customer_by_email(email)))
    return JsonResponse([customer_to_dict(c) for c in service.list_customers()], safe=False)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def customer_detail(request, customer_id: int):
    service = CustomerService()
    if request.method == "GET":
        return JsonResponse(customer_to_dict(service.get_customer(customer_id)))

    if request.method == "PUT":
        customer = service.update_customer(customer_id, parse_json_body(request))
        return JsonResponse(customer_to_dict(customer))

    service.delete_customer(customer_id)
    return HttpResponse(status=204)


@require_GET
def customer_orders(request, customer_id: int):
    orders = OrderService().get_orders_by_customer(customer_id)
    return JsonResponse([order_to_dict(o) for o in orders], safe=False)


# Categories

@csrf_exempt
@require_http_methods(["GET", "POST"])
def categories_collection(request):
    service = CategoryService()
    if request.method == "POST":
        category = service.create_category(parse_json_body(request))
        return JsonResponse(category_to_dict(category), status=201)
    return JsonResponse([category_to_dict(c) for c in service.list_categories()], safe=False)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def category_detail(request, category_id: int):
    service = CategoryService()
    if request.method == "GET":
        return JsonResponse(category_to_dict(service.get_category(category_id)))

    if request.method == "PUT":
        category = service.update_category(category_id, parse_json_body(request))
        return JsonResponse(category_to_dict(category))

    service.delete_category(category_id)
    return HttpResponse(status=204)


# Products

@csrf_exempt
@require_http_methods(["GET", "POST"])
def products_collection(request):
    service = ProductService()
    if request.method == "POST":
        product = service.create_product(parse_product_payload(parse_json_body(request)))
        return JsonResponse(product_to_dict(product), status=201)

    category_id = request.GET.get("categoryId")
    products = service.list_products(
        category_id=parse_id(category_id, "categoryId") if category_id else None,
    )
    return JsonResponse([product_to_dict(p) for p in products], safe=False)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def product_detail(request, product_id: int):
    service = ProductService()
    if request.method == "GET":
        return JsonResponse(product_to_dict(service.get_product(product_id)))

    if request.method == "PUT":
        product = service.update_product(
            product_id, parse_product_payload(parse_json_body(request)),
        )
        return JsonResponse(product_to_dict(product))

    service.delete_product(product_id)
    return HttpResponse(status=204)
