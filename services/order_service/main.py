from fastapi import FastAPI
from shared.config.database import init_models
from shared.errors import register_error_handlers
from shared.observability import setup_observability
from .router import router, admin_router, public_router
from .models import Order, OrderItem  # noqa: F401 (registers models with Base)
from services.product_service.models import Product  # noqa: F401

order_app = FastAPI(title="Order Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(order_app, "order_service")
register_error_handlers(order_app)

order_app.include_router(public_router)
order_app.include_router(router)
order_app.include_router(admin_router)

@order_app.on_event("startup")
async def startup_event():
    await init_models()
