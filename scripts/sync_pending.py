"""Ask the payment service to resolve pending asynchronous authorizations."""

import argparse
import json

import httpx


def main() -> None:
    """CLI entrypoint for pending-authorization sync."""

    parser = argparse.ArgumentParser(description="Trigger /orders/{id}/sync for pending orders.")
    parser.add_argument("order_ids", nargs="+")
    parser.add_argument("--service-url", default="http://localhost:8000")
    args = parser.parse_args()

    results = {}
    with httpx.Client(base_url=args.service_url, timeout=10.0) as client:
        for order_id in args.order_ids:
            resp = client.post(f"/orders/{order_id}/sync")
            resp.raise_for_status()
            results[order_id] = resp.json()
    print(json.dumps(results, indent=2))


if __name__ == "__main__":
    main()
