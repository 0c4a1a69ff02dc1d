"""
API Gateway

Single entry point for the UniRaum services. Requests are routed by
the first path segment and spread round-robin over the configured
instances of the target service.

Features:
- Request routing based on path
- Round-robin load balancing with failure tracking
- Periodic health checks of backend services
- Gateway status and resource summary endpoints
"""

from fastapi import FastAPI, Request, HTTPException, Response, status
import httpx
from typing import Dict, List, Optional
import asyncio
from datetime import datetime
import logging
import os
import time
from enum import Enum

import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.caching import get_cache_stats
from shared.monitoring import get_metrics_summary

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVICE_URLS = {
    "users": os.getenv("USERS_SERVICE_URL", "http://localhost:8001"),
    "rooms": os.getenv("ROOMS_SERVICE_URL", "http://localhost:8002"),
    "bookings": os.getenv("BOOKINGS_SERVICE_URL", "http://localhost:8003"),
    "damage_reports": os.getenv("DAMAGE_REPORTS_SERVICE_URL", "http://localhost:8004"),
}

# first path segment -> service
SERVICE_MAP = {
    "auth": "users",
    "user": "users",
    "users": "users",
    "rooms": "rooms",
    "bookings": "bookings",
    "admin": "bookings",
    "damage-reports": "damage_reports",
}

# not forwarded in either direction
HOP_BY_HOP_HEADERS = {
    "host", "connection", "keep-alive", "transfer-encoding",
    "content-length", "content-encoding", "upgrade",
}

FAILURE_THRESHOLD = 3


class ServiceStatus(str, Enum):
    """Service health status."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class ServiceEndpoint:
    """
    One instance of a backend service.

    Attributes:
        url: Base URL of the instance
        status: Current health status
        last_check: Time of the last request or health check
        failure_count: Number of consecutive failures
    """

    def __init__(self, url: str):
        self.url = url.rstrip("/")
        self.status = ServiceStatus.UNKNOWN
        self.last_check = None
        self.failure_count = 0
        self.response_times = []

    def record_success(self, response_time: float):
        self.status = ServiceStatus.HEALTHY
        self.failure_count = 0
        self.last_check = datetime.utcnow()
        self.response_times = (self.response_times + [response_time])[-100:]

    def record_failure(self):
        self.failure_count += 1
        self.last_check = datetime.utcnow()
        if self.failure_count >= FAILURE_THRESHOLD:
            self.status = ServiceStatus.UNHEALTHY

    def get_avg_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)


class LoadBalancer:
    """
    Round-robin balancer over the instances of one service.

    Unhealthy instances are skipped; when every instance is unhealthy
    the first one is still tried.
    """

    def __init__(self, service_name: str, endpoints: List[str]):
        self.service_name = service_name
        self.endpoints = [ServiceEndpoint(url) for url in endpoints]
        self.current_index = 0

    def get_next_endpoint(self) -> Optional[ServiceEndpoint]:
        for _ in range(len(self.endpoints)):
            endpoint = self.endpoints[self.current_index]
            self.current_index = (self.current_index + 1) % len(self.endpoints)
            if endpoint.status != ServiceStatus.UNHEALTHY:
                return endpoint

        return self.endpoints[0] if self.endpoints else None

    async def health_check(self, client: httpx.AsyncClient):
        """Probe /health of every instance."""
        for endpoint in self.endpoints:
            try:
                start_time = time.perf_counter()
                response = await client.get(f"{endpoint.url}/health", timeout=5.0)
                if response.status_code == 200:
                    endpoint.record_success(time.perf_counter() - start_time)
                else:
                    endpoint.record_failure()
            except httpx.HTTPError as e:
                logger.error(f"Health check failed for {endpoint.url}: {e}")
                endpoint.record_failure()

    def get_status(self) -> dict:
        return {
            "service": self.service_name,
            "endpoints": [
                {
                    "url": ep.url,
                    "status": ep.status.value,
                    "failure_count": ep.failure_count,
                    "avg_response_time": round(ep.get_avg_response_time(), 3),
                    "last_check": ep.last_check.isoformat() if ep.last_check else None
                }
                for ep in self.endpoints
            ]
        }


class APIGateway:
    """
    Routes requests to the backend services.

    Args:
        service_urls: service name -> comma separated instance URLs
        client: HTTP client used for forwarding
    """

    def __init__(self, service_urls: Dict[str, str] = None, client: httpx.AsyncClient = None):
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.load_balancers: Dict[str, LoadBalancer] = {}
        for service_name, urls in (service_urls or SERVICE_URLS).items():
            endpoints = [url.strip() for url in urls.split(",") if url.strip()]
            self.load_balancers[service_name] = LoadBalancer(service_name, endpoints)

    def get_service_from_path(self, path: str) -> Optional[str]:
        """
        Map a request path to the service owning it.

        Example:
            >>> APIGateway().get_service_from_path("/admin/bookings/3")
            'bookings'
        """
        first = path.strip("/").split("/")[0]
        return SERVICE_MAP.get(first)

    async def route_request(
        self,
        method: str,
        path: str,
        headers: dict,
        params: dict = None,
        content: bytes = None
    ) -> httpx.Response:
        """
        Forward a request to an instance of the owning service.

        Raises:
            HTTPException: 404 for an unknown path, 503 when the service
                has no instance, 502 when the instance cannot be reached
        """
        service_name = self.get_service_from_path(path)
        if service_name not in self.load_balancers:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found"
            )

        endpoint = self.load_balancers[service_name].get_next_endpoint()
        if endpoint is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Service {service_name} is unavailable"
            )

        target_url = f"{endpoint.url}{path}"
        try:
            start_time = time.perf_counter()
            response = await self.client.request(
                method=method,
                url=target_url,
                headers=headers,
                params=params,
                content=content
            )
            endpoint.record_success(time.perf_counter() - start_time)
            return response
        except httpx.HTTPError as e:
            endpoint.record_failure()
            logger.error(f"Request to {target_url} failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Error communicating with {service_name} service"
            )

    async def health_check_all(self):
        await asyncio.gather(*(lb.health_check(self.client) for lb in self.load_balancers.values()))

    def get_gateway_status(self) -> dict:
        return {
            "gateway": "operational",
            "timestamp": datetime.utcnow().isoformat(),
            "services": {
                name: lb.get_status()
                for name, lb in self.load_balancers.items()
            }
        }


def _forwardable(headers) -> dict:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


app = FastAPI(title="UniRaum API Gateway", version="1.0.0")
gateway = APIGateway()


@app.on_event("startup")
async def startup_event():
    """Perform initial health checks and schedule periodic ones."""
    await gateway.health_check_all()
    app.state.health_check_task = asyncio.create_task(periodic_health_checks())


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the periodic health checks."""
    task = getattr(app.state, "health_check_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


async def periodic_health_checks():
    """Perform health checks every 30 seconds."""
    while True:
        await asyncio.sleep(30)
        await gateway.health_check_all()


@app.get("/gateway/health")
async def gateway_health():
    return gateway.get_gateway_status()


@app.get("/gateway/metrics")
async def gateway_metrics():
    """System resource usage of the gateway host and cache statistics."""
    return {"resources": get_metrics_summary(), "cache": get_cache_stats()}


@app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
async def gateway_handler(request: Request, path: str):
    """
    Forward any other request to its service and relay the response.

    Bodies are forwarded as raw bytes, so JSON and multipart uploads
    pass through unchanged.
    """
    body = await request.body()
    response = await gateway.route_request(
        method=request.method,
        path=f"/{path}",
        headers=_forwardable(request.headers),
        params=dict(request.query_params),
        content=body or None
    )

    return Response(
        content=response.content,
        status_code=response.status_code,
        headers=_forwardable(response.headers)
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
