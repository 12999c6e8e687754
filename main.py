from fastapi import FastAPI
from shared.config.database import init_models

# IMPORTANT: import models so they register with Base
from services.product_service import models as product_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401

from services.product_service.main import product_app
from services.order_service.main import order_app
from services.payment_service.main import payment_app

app = FastAPI(title="Storefront Cluster")

@app.on_event("startup")
async def startup_event():
    await init_models()

@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "cluster", "status": "running"}

app.mount("/api/products", product_app)
app.mount("/api/orders", order_app)
app.mount("/api/payments", payment_app)
