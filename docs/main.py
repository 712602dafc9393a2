"""
Service Discovery / Documentation Service
Provides a single entry point to discover all SafeCity microservices.
"""

# Run:
# uvicorn docs.main:app --host 0.0.0.0 --port 8080 --reload

from common.constants import SERVICES
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig

service_config = ServiceAppConfig(
    title="SafeCity Services Discovery",
    description="Service discovery and documentation endpoint for all SafeCity microservices.",
    service_name="service_discovery",
    enable_metrics=False,
    include_root=False,
)

factory = FastAPIServiceFactory(service_config)
app = factory.create_app()


@app.get("/")
async def index():
    """Service discovery endpoint - lists all available services."""
    return {
        "services": {
            name: f"http://127.0.0.1:{port}/docs" for name, (_, port) in SERVICES.items()
        },
        "description": "SafeCity Microservices - Click on any service to view its API documentation",
    }
