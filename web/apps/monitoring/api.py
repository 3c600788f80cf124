from django.conf import settings
from django.db import connection
from django.http import JsonResponse

from apps.payments.stripe_adapter import stripe_cb


def health_view(_request):
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except Exception:
        db_ok = False

    payments = {
        "ok": stripe_cb.state != "OPEN",
        "backend": settings.PAYMENTS_BACKEND,
        "circuit": stripe_cb.state,
    }

    ok = db_ok and payments["ok"]
    code = 200 if ok else 503
    return JsonResponse(
        {"ok": ok, "components": {"db": {"ok": db_ok}, "payments": payments}},
        status=code,
    )


def live_view(_request):
    return JsonResponse({"ok": True}, status=200)
