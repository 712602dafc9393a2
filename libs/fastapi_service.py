"""
FastAPI Service Factory
Builds SafeCity service apps with CORS, health/root endpoints, Prometheus
metrics and the shared error-to-HTTP mapping.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from common.errors import UpstreamUnavailableError, ValidationError
from libs.config import Config

logger = logging.getLogger(__name__)


class ServiceMetrics:
    """Prometheus metrics for one service, kept in a private registry."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.registry = CollectorRegistry()

        self.request_count = Counter(
            "service_requests_total",
            "Total HTTP requests handled by the service",
            ["service", "method", "path", "http_status"],
            registry=self.registry,
        )

        self.request_latency = Histogram(
            "service_request_duration_seconds",
            "Request latency in seconds",
            ["service", "path"],
            registry=self.registry,
        )

        self.upstream_errors = Counter(
            "service_upstream_errors_total",
            "Upstream provider failures surfaced by the service",
            ["service", "provider"],
            registry=self.registry,
        )

        self.business_metrics: Dict[str, Counter] = {}

    def record_request(self, method: str, path: str, status_code: int, duration: float):
        self.request_count.labels(
            service=self.service_name,
            method=method,
            path=path,
            http_status=status_code,
        ).inc()
        self.request_latency.labels(service=self.service_name, path=path).observe(duration)

    def record_upstream_error(self, provider: str):
        self.upstream_errors.labels(service=self.service_name, provider=provider).inc()

    def get_metrics_prometheus(self) -> str:
        """Get Prometheus-formatted metrics."""
        return generate_latest(self.registry).decode("utf-8")


class CORSMiddlewareConfig:
    """Configuration for CORS middleware."""

    def __init__(
        self,
        allow_origins: Optional[List[str]] = None,
        allow_credentials: bool = True,
        allow_methods: Optional[List[str]] = None,
        allow_headers: Optional[List[str]] = None,
    ):
        self.allow_origins = allow_origins or Config.cors_origins() or ["*"]
        self.allow_credentials = allow_credentials
        self.allow_methods = allow_methods or ["*"]
        self.allow_headers = allow_headers or ["*"]


class ServiceAppConfig:
    """Configuration for creating a service FastAPI app."""

    def __init__(
        self,
        title: str,
        description: str,
        service_name: str,
        version: str = "1.0.0",
        cors_config: Optional[CORSMiddlewareConfig] = None,
        enable_metrics: bool = True,
        include_root: bool = True,
        health_details: Optional[Callable[[], Dict[str, str]]] = None,
    ):
        self.title = title
        self.description = description
        self.service_name = service_name
        self.version = version
        self.cors_config = cors_config or CORSMiddlewareConfig()
        self.enable_metrics = enable_metrics
        self.include_root = include_root
        # Extra key/values merged into /health (e.g. provider enabled/disabled)
        self.health_details = health_details


class FastAPIServiceFactory:
    """
    Factory class for creating standardized FastAPI service applications.

    Encapsulates CORS, metrics, health checks and error handlers so each
    service module only registers its own routes.
    """

    def __init__(self, config: ServiceAppConfig):
        """
        Initialize the factory with service configuration.

        Args:
            config: ServiceAppConfig containing all service-specific settings
        """
        self.config = config
        self.metrics = ServiceMetrics(config.service_name) if config.enable_metrics else None

    def create_app(self) -> FastAPI:
        """
        Create and configure a FastAPI application.

        Returns:
            Configured FastAPI app ready for route registration
        """
        app = FastAPI(
            title=self.config.title,
            description=self.config.description,
            version=self.config.version,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_config.allow_origins,
            allow_credentials=self.config.cors_config.allow_credentials,
            allow_methods=self.config.cors_config.allow_methods,
            allow_headers=self.config.cors_config.allow_headers,
        )

        if self.config.include_root:
            self._add_root_endpoint(app)
        self._add_health_endpoint(app)
        self._add_error_handlers(app)

        if self.config.enable_metrics and self.metrics:
            self._add_metrics_middleware(app)
            self._add_metrics_endpoint(app)

        app.state.metrics = self.metrics
        app.state.service_name = self.config.service_name

        return app

    def _add_metrics_middleware(self, app: FastAPI):
        metrics = self.metrics  # Capture for closure

        @app.middleware("http")
        async def prometheus_middleware(request: Request, call_next):
            start = time.time()
            response = await call_next(request)
            metrics.record_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration=time.time() - start,
            )
            return response

    def _add_metrics_endpoint(self, app: FastAPI):
        metrics = self.metrics  # Capture for closure

        @app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=metrics.get_metrics_prometheus(),
                media_type=CONTENT_TYPE_LATEST,
            )

    def _add_root_endpoint(self, app: FastAPI):
        service_name = self.config.service_name

        @app.get("/")
        async def root():
            return {"service": service_name, "status": "running"}

    def _add_health_endpoint(self, app: FastAPI):
        service_name = self.config.service_name
        health_details = self.config.health_details

        @app.get("/health")
        async def health_check():
            """
            Health check endpoint.

            Returns:
                Dict with status, service name and any provider details
            """
            body = {"status": "ok", "service": service_name}
            if health_details:
                body.update(health_details())
            return body

    def _add_error_handlers(self, app: FastAPI):
        metrics = self.metrics

        @app.exception_handler(ValidationError)
        async def validation_error_handler(request: Request, exc: ValidationError):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": exc.message},
            )

        @app.exception_handler(UpstreamUnavailableError)
        async def upstream_error_handler(request: Request, exc: UpstreamUnavailableError):
            if metrics:
                metrics.record_upstream_error(exc.provider)
            if exc.is_not_found:
                return JSONResponse(
                    status_code=status.HTTP_404_NOT_FOUND,
                    content={"detail": "Location not found"},
                )
            logger.error(f"Upstream failure on {request.url.path}: {exc}")
            return JSONResponse(
                status_code=status.HTTP_502_BAD_GATEWAY,
                content={"detail": f"Upstream provider unavailable: {exc.provider}"},
            )

    def add_business_metric(
        self, name: str, description: str, labels: Optional[List[str]] = None
    ) -> Counter:
        """
        Add a business-specific metric counter.

        Args:
            name: Metric name
            description: Metric description
            labels: Optional list of label names

        Returns:
            Counter object that can be used to increment metrics
        """
        if not self.metrics:
            raise ValueError("Metrics not enabled for this service")

        counter = Counter(
            name,
            description,
            labels or [],
            registry=self.metrics.registry,
        )
        self.metrics.business_metrics[name] = counter
        return counter
