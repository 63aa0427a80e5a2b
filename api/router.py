from ninja import NinjaAPI
from ninja.errors import AuthenticationError

from apps.orders.api import router as orders_router
from apps.scheduler.api import router as scheduler_router
from apps.seapay.api import router as seapay_router
from apps.supplier.api import router as supplier_router

api = NinjaAPI(title="Order Reconciliation API", version="1.0.0")


@api.exception_handler(AuthenticationError)
def invalid_api_key(request, exc):
    return api.create_response(request, {"message": "Invalid API key"}, status=403)


# Routers
api.add_router("/sepay/", seapay_router, tags=["Sepay Payment"])
api.add_router("/supplies/", supplier_router, tags=["Supplier Balance"])
api.add_router("/orders/", orders_router, tags=["Orders"])
api.add_router("/scheduler/", scheduler_router, tags=["Scheduler"])
