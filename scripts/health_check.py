"""
Health check script for all services.

Calls /health of every UniRaum service and of the gateway.

Usage: python scripts/health_check.py
"""

import os
import sys
from typing import Dict

import requests

SERVICES = {
    "API Gateway": os.getenv("GATEWAY_URL", "http://localhost:8000") + "/gateway/health",
    "Users Service": os.getenv("USERS_SERVICE_URL", "http://localhost:8001") + "/health",
    "Rooms Service": os.getenv("ROOMS_SERVICE_URL", "http://localhost:8002") + "/health",
    "Bookings Service": os.getenv("BOOKINGS_SERVICE_URL", "http://localhost:8003") + "/health",
    "Damage Reports Service": os.getenv("DAMAGE_REPORTS_SERVICE_URL", "http://localhost:8004") + "/health",
}


def check_service(name: str, url: str) -> Dict:
    """
    Check if a service is healthy.

    Returns:
        dict: name, status (HEALTHY, UNHEALTHY, OFFLINE, TIMEOUT or
        ERROR), response body and error message
    """
    result = {"name": name, "status": "HEALTHY", "response": None, "error": None}
    try:
        response = requests.get(url, timeout=5)
    except requests.exceptions.ConnectionError:
        result.update(status="OFFLINE", error="Connection refused - service may not be running")
        return result
    except requests.exceptions.Timeout:
        result.update(status="TIMEOUT", error="Request timed out")
        return result
    except requests.exceptions.RequestException as e:
        result.update(status="ERROR", error=str(e))
        return result

    if response.status_code != 200:
        result.update(status="UNHEALTHY", error=f"Status code: {response.status_code}")
    else:
        result["response"] = response.json()
    return result


def main():
    """Run health checks on all services."""
    print("=" * 70)
    print(" UniRaum - Health Check")
    print("=" * 70)
    print()

    results = []
    for service_name, service_url in SERVICES.items():
        print(f"Checking {service_name}...", end=" ")
        result = check_service(service_name, service_url)
        results.append(result)
        print(result["status"])

        if result["error"]:
            print(f"  Error: {result['error']}")
        print()

    healthy_count = sum(1 for r in results if r["status"] == "HEALTHY")
    total_count = len(results)

    print("=" * 70)
    print(f"Healthy: {healthy_count}/{total_count}")

    if healthy_count == total_count:
        print("\nAll services are operational!")
        sys.exit(0)

    print("\nSome services are not operational!")
    sys.exit(1)


if __name__ == "__main__":
    main()
