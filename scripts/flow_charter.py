#!/usr/bin/env python3
"""
Complete charter flow test script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_charter.py --vessel-id <UUID> --start 2026-11-01 --end 2026-11-08 \
        --owner-token <JWT> --operator-token <JWT>

Tokens can be minted with scripts/create_admin.py --role OWNER / --role OPERATOR.

Flow:
    1. Request booking (operator)
    2. Counter with amended terms (owner)
    3. Accept booking (owner)
    4. Generate contract
    5. Sign contract (owner, then operator)
    6. Open escrow (operator)
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=10.0, follow_redirects=True)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=10.0, follow_redirects=True)
    elif method == "PATCH":
        response = httpx.patch(url, headers=headers, json=data or {}, timeout=10.0, follow_redirects=True)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Complete charter flow")
    parser.add_argument("--vessel-id", required=True, help="Vessel UUID")
    parser.add_argument("--start", required=True, help="Charter start date (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="Charter end date, exclusive (YYYY-MM-DD)")
    parser.add_argument("--owner-token", required=True)
    parser.add_argument("--operator-token", required=True)
    parser.add_argument("--provider", default="PAYSTACK", choices=["PAYSTACK", "FLUTTERWAVE"])
    parser.add_argument("--currency", default="NGN", choices=["NGN", "USD"])
    args = parser.parse_args()

    owner, operator = args.owner_token, args.operator_token

    # Step 1: Request booking
    print_step(1, "Request booking (operator)")
    booking_result = api_request(operator, "POST", "/api/v1/bookings", {
        "vessel_id": args.vessel_id,
        "start": args.start,
        "end": args.end,
        "terms": {
            "purpose": "Offshore supply run to the platform field",
            "cargo_type": "Drilling equipment",
            "estimated_crew": 12,
        },
    })
    if not print_result(booking_result, ["id", "status", "version", "start", "end"]):
        sys.exit(1)
    booking_id = booking_result["data"]["id"]

    # Step 2: Counter
    print_step(2, "Counter with amended terms (owner)")
    counter_result = api_request(owner, "PATCH", f"/api/v1/bookings/{booking_id}", {
        "status": "COUNTERED",
        "note": "Fuel at charterer's cost",
        "terms": {"special_requirements": "Fuel billed at cost"},
    })
    if not print_result(counter_result, ["id", "status", "version", "terms"]):
        sys.exit(1)

    # Step 3: Accept
    print_step(3, "Accept booking (owner)")
    accept_result = api_request(owner, "PATCH", f"/api/v1/bookings/{booking_id}", {
        "status": "ACCEPTED",
        "note": "Agreed",
    })
    if not print_result(accept_result, ["id", "status", "version"]):
        sys.exit(1)

    # Step 4: Generate contract
    print_step(4, "Generate contract")
    contract_result = api_request(operator, "POST", "/api/v1/contracts", {"booking_id": booking_id})
    if not print_result(contract_result, ["id", "status", "version"]):
        sys.exit(1)
    contract_id = contract_result["data"]["id"]

    # Step 5: Sign
    print_step(5, "Sign contract (owner, then operator)")
    for token, role in ((owner, "OWNER"), (operator, "OPERATOR")):
        sign_result = api_request(token, "POST", f"/api/v1/contracts/{contract_id}/sign", {"signer_role": role})
        if not print_result(sign_result, ["id", "status", "signer_ids", "signed_at"]):
            sys.exit(1)

    # Step 6: Open escrow
    print_step(6, "Open escrow (operator)")
    escrow_result = api_request(operator, "POST", "/api/v1/escrow", {
        "booking_id": booking_id,
        "provider": args.provider,
        "currency": args.currency,
    })
    if not print_result(escrow_result, ["reference", "payment_url", "amounts"]):
        sys.exit(1)

    # Final summary
    amounts = escrow_result["data"]["amounts"]
    print("\n" + "="*60)
    print("CHARTER FLOW COMPLETE")
    print("="*60)
    print(f"Booking:        {booking_id}")
    print(f"Contract:       {contract_id}")
    print(f"Escrow ref:     {escrow_result['data']['reference']}")
    print(f"Total:          {amounts['total_amount']} {args.currency}")
    print(f"Platform fee:   {amounts['platform_fee']} ({amounts['fee_percent']}%)")
    print(f"Owner payout:   {amounts['owner_payout']}")
    print(f"Pay at:         {escrow_result['data']['payment_url']}")


if __name__ == "__main__":
    main()
