"""HTTP views for the orders app.

Views stay small: they validate requests with pydantic DTOs, map them to
domain objects, delegate to the services returned by ``providers`` and turn
the outcome into an HTTP response. Every customer-facing endpoint is scoped
to the authenticated user; another user's order answers 404, never 403, so
ids cannot be tested for existence.

Idempotency: ``POST /api/orders/`` honours an ``Idempotency-Key`` header.
The first request runs and its response is stored; retries with the same
payload get the stored response back (``Idempotent-Replay: true``) and reuse
of the key with a different payload returns 409.
"""

import logging
import math
from datetime import timedelta

from django.core.paginator import EmptyPage, Paginator
from django.db.models import Q
from django.http import HttpResponse
from django.utils import timezone
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from gateway.authentication import IsOrderAdmin, is_order_admin
from .domain import Order, OrderError, OrderItem, OrderValidationError
from .idempotency import finalize, get_or_create_idempotent
from .invoice import invoice_filename, render_invoice
from .models import OrderModel
from .providers import get_order_service
from .repository import OrderRepository
from .schemas import CreateOrderDTO, OrderReadDTO, UpdateOrderDTO
from .tracking import tracking_info

logger = logging.getLogger("orders")

NOT_FOUND = {"detail": "NOT_FOUND", "error": "Order not found"}
MAX_PAGE_SIZE = 100


class BadQuery(ValueError):
    pass


def _pydantic_fields(exc: ValidationError) -> dict:
    return {".".join(str(p) for p in err["loc"]) or "body": err["msg"] for err in exc.errors()}


def _int_param(request, name: str, default: int) -> int:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadQuery(f"Invalid {name}")
    if value < 1:
        raise BadQuery(f"Invalid {name}")
    return value


def _paginate(request, qs, default_limit: int) -> dict:
    """Apply ``page``/``limit`` and render the order list payload."""
    page = _int_param(request, "page", 1)
    limit = min(_int_param(request, "limit", default_limit), MAX_PAGE_SIZE)
    paginator = Paginator(qs, limit)
    try:
        rows = paginator.page(page).object_list
    except EmptyPage:
        rows = []
    total = paginator.count
    return {
        "orders": [OrderReadDTO.from_model(o).to_json() for o in rows],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


def _filter_status(request, qs):
    wanted = request.GET.get("status")
    if wanted and wanted != "all":
        qs = qs.filter(status=wanted)
    return qs


class OrdersCollectionView(APIView):
    """List the caller's orders and create new ones."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        """List orders, newest first.

        Query params: ``page``, ``limit`` (default 10), ``status``,
        ``search`` (order number substring) and ``dateRange`` (``all`` or a
        number of days back).
        """
        qs = _filter_status(request, OrderModel.objects.filter(user_id=request.user.user_id))

        search = (request.GET.get("search") or "").strip()
        if search:
            qs = qs.filter(order_number__icontains=search)

        date_range = request.GET.get("dateRange")
        try:
            if date_range and date_range != "all":
                try:
                    days = int(date_range)
                except ValueError:
                    raise BadQuery("Invalid dateRange")
                qs = qs.filter(created_at__gte=timezone.now() - timedelta(days=days))
            body = _paginate(request, qs.order_by("-created_at"), default_limit=10)
        except BadQuery as e:
            return Response({"detail": "INVALID_QUERY", "error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(body, status=status.HTTP_200_OK)

    def post(self, request):
        """Create a new order.

        Returns:
            Response: One of the following responses.
            - 201 ``{message, order}`` when the order is created.
            - Stored status/body when an idempotent request is replayed.
            - 400 for payload errors, empty orders, insufficient stock and
              model validation failures (with ``fields``).
            - 401 without a valid bearer token.
            - 409 ``IDEMPOTENCY_CONFLICT`` / ``IDEMPOTENCY_IN_PROGRESS``.
        """
        user_id = request.user.user_id
        idem_key = request.headers.get("Idempotency-Key")

        # 1) Pydantic validation
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return Response(
                {"detail": "VALIDATION_ERROR", "error": "Invalid order payload", "fields": _pydantic_fields(e)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # 2) Idempotency get-or-create
        rec = None
        if idem_key:
            try:
                existing, rec = get_or_create_idempotent(user_id, idem_key, request.data)
            except ValueError:
                return Response({"detail": "IDEMPOTENCY_CONFLICT"}, status=status.HTTP_409_CONFLICT)
            if existing:
                if not rec.response_status:
                    return Response({"detail": "IDEMPOTENCY_IN_PROGRESS"}, status=status.HTTP_409_CONFLICT)
                resp = Response(rec.response_body, status=rec.response_status)
                resp["Idempotent-Replay"] = "true"
                return resp

        # 3) Domain
        order = Order(
            id=None,
            user_id=user_id,
            items=[
                OrderItem(
                    product_id=i.product_id,
                    name=i.name,
                    price=i.price,
                    quantity=i.quantity,
                    image=i.image,
                    size=i.size,
                    color=i.color,
                )
                for i in dto.items
            ],
            subtotal=dto.subtotal,
            tax=dto.tax,
            shipping=dto.shipping,
            total=dto.total,
            shipping_address=dto.shipping_address.model_dump(by_alias=True, exclude_none=True),
            billing_address=dto.billing_address.model_dump(by_alias=True, exclude_none=True),
            payment_method=dto.payment_method,
        )

        try:
            out = get_order_service().place_order(order)
        except OrderValidationError as e:
            body = {"detail": e.code, "error": e.message, "fields": e.fields}
            if rec:
                finalize(rec, status.HTTP_400_BAD_REQUEST, body)
            return Response(body, status=status.HTTP_400_BAD_REQUEST)
        except OrderError as e:
            logger.info("order rejected", extra={"code": str(e), "reason": e.message})
            body = {"detail": str(e), "error": e.message}
            if rec:
                finalize(rec, status.HTTP_400_BAD_REQUEST, body)
            return Response(body, status=status.HTTP_400_BAD_REQUEST)
        except Exception:
            # let the client retry with the same key
            if rec:
                rec.delete()
            raise

        # 4) Response
        logger.info("order created", extra={"order_id": out.id, "order_number": out.order_number})
        body = {
            "message": "Order created successfully",
            "order": OrderReadDTO.from_model(OrderRepository().get_model(out.id)).to_json(),
        }
        if rec:
            finalize(rec, status.HTTP_201_CREATED, body, order_id=out.id)
        return Response(body, status=status.HTTP_201_CREATED)


def _owned_order(request, oid):
    return OrderModel.objects.filter(pk=oid, user_id=request.user.user_id).first()


def _apply_update(o: OrderModel, data) -> OrderModel:
    """Validate an update payload against the allow-list and save it.

    Raises:
        pydantic.ValidationError: For an unknown status or oversized fields.
    """
    dto = UpdateOrderDTO.model_validate(data if isinstance(data, dict) else {})
    changes = dto.model_dump(exclude_unset=True, exclude_none=True)
    if "status" in changes:
        changes["status"] = changes["status"].value
    for name, value in changes.items():
        setattr(o, name, value)
    if changes:
        o.save(update_fields=[*changes, "updated_at"])
    return o


class RetrieveOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid):
        o = _owned_order(request, oid)
        if o is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response({"order": OrderReadDTO.from_model(o).to_json()}, status=status.HTTP_200_OK)

    def put(self, request, oid):
        """Update ``status``, ``trackingNumber`` or ``notes``; other keys are ignored."""
        o = _owned_order(request, oid)
        if o is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        try:
            o = _apply_update(o, request.data)
        except ValidationError as e:
            return Response(
                {"detail": "VALIDATION_ERROR", "error": "Invalid update", "fields": _pydantic_fields(e)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            {"message": "Order updated successfully", "order": OrderReadDTO.from_model(o).to_json()},
            status=status.HTTP_200_OK,
        )


class TrackOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid):
        o = _owned_order(request, oid)
        if o is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(tracking_info(o), status=status.HTTP_200_OK)


class InvoiceView(APIView):
    """Download an order's invoice as an HTML attachment.

    Owners see their own orders; admins may fetch any order.
    """

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid):
        qs = OrderModel.objects.filter(pk=oid)
        if not is_order_admin(request.user):
            qs = qs.filter(user_id=request.user.user_id)
        o = qs.first()
        if o is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)

        # the token only carries the caller's own e-mail
        email = request.user.email if o.user_id == request.user.user_id else None
        response = HttpResponse(render_invoice(o, email=email), content_type="text/html; charset=utf-8")
        response["Content-Disposition"] = f'attachment; filename="{invoice_filename(o)}"'
        return response


# ---- Admin ----
class AdminOrdersCollectionView(APIView):
    """All orders across users, for staff holding the admin permission."""

    permission_classes = [IsOrderAdmin]

    def get(self, request):
        qs = _filter_status(request, OrderModel.objects.all())
        search = (request.GET.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(order_number__icontains=search)
                | Q(user_id__icontains=search)
                | Q(shipping_address__lastName__icontains=search)
            )
        try:
            body = _paginate(request, qs.order_by("-created_at"), default_limit=50)
        except BadQuery as e:
            return Response({"detail": "INVALID_QUERY", "error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(body, status=status.HTTP_200_OK)


class AdminOrderDetailView(APIView):
    permission_classes = [IsOrderAdmin]

    def get(self, request, oid):
        o = OrderModel.objects.filter(pk=oid).first()
        if o is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response({"order": OrderReadDTO.from_model(o).to_json()}, status=status.HTTP_200_OK)

    def put(self, request, oid):
        o = OrderModel.objects.filter(pk=oid).first()
        if o is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        try:
            o = _apply_update(o, request.data)
        except ValidationError as e:
            return Response(
                {"detail": "VALIDATION_ERROR", "error": "Invalid update", "fields": _pydantic_fields(e)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        logger.info("order updated by admin", extra={"order_id": str(o.pk), "admin_id": request.user.user_id})
        return Response({"order": OrderReadDTO.from_model(o).to_json()}, status=status.HTTP_200_OK)

    def delete(self, request, oid):
        deleted, _ = OrderModel.objects.filter(pk=oid).delete()
        if not deleted:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        logger.info("order deleted by admin", extra={"order_id": str(oid), "admin_id": request.user.user_id})
        return Response({"message": "Order deleted successfully"}, status=status.HTTP_200_OK)
