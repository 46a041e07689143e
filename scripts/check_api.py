"""Script to check that a deployment answers health checks and accepts uploads."""

import argparse
import json
import sys

import httpx

MINIMAL_PDF = (
    b"%PDF-1.4 1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj 2 0 obj<</Type/Pages/Kids[3 0 R]"
    b"/Count 1>>endobj 3 0 obj<</Type/Page/MediaBox[0 0 612 792]/Parent 2 0 R>>endobj "
    b"xref 0 4 trailer<</Size 4/Root 1 0 R>> startxref %%EOF"
)


def check_health(client: httpx.Client) -> bool:
    print("1. GET /api/health")
    try:
        response = client.get("/api/health")
    except httpx.HTTPError as e:
        print(f"   FAIL - {e}")
        return False

    print(f"   Status: {response.status_code}")
    if not response.is_success:
        print(f"   FAIL - Body: {response.text[:300]}")
        return False
    if "application/json" not in response.headers.get("content-type", ""):
        print(f"   WARN - Response is not JSON. First 200 chars: {response.text[:200]}")
        return False
    print("   OK - API is reachable")
    print("   " + json.dumps(response.json(), indent=2).replace("\n", "\n   "))
    return True


def check_send(client: httpx.Client, phone_number: str) -> bool:
    print("2. POST /api/upload/send-pdf")
    try:
        response = client.post(
            "/api/upload/send-pdf",
            data={"phoneNumber": phone_number},
            files={"pdf": ("test.pdf", MINIMAL_PDF, "application/pdf")},
        )
    except httpx.HTTPError as e:
        print(f"   FAIL - {e}")
        return False

    print(f"   Status: {response.status_code}")
    try:
        body = response.json()
    except ValueError:
        print(f"   FAIL - Response is not JSON: {response.text[:300]}")
        return False

    print("   " + json.dumps(body, indent=2).replace("\n", "\n   "))
    if response.is_success and body.get("success"):
        print("   OK - document accepted for delivery")
        return True
    # A 500 with a gateway message still proves the route and parsing work.
    print("   FAIL - " + str(body.get("error") or body.get("message")))
    return False


def main() -> None:
    parser = argparse.ArgumentParser(description="Check a WhatsApp document delivery deployment")
    parser.add_argument("base_url", nargs="?", default="http://localhost:8000", help="Service base URL")
    parser.add_argument("--phone", default="919080577774", help="Destination number for the test send")
    parser.add_argument("--skip-send", action="store_true", help="Only run the health check")
    args = parser.parse_args()

    print(f"\n=== API connectivity test ===\nBase URL: {args.base_url}\n")
    with httpx.Client(base_url=args.base_url, timeout=60.0) as client:
        ok = check_health(client)
        if not args.skip_send:
            ok = check_send(client, args.phone) and ok

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
