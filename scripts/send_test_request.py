import argparse
import base64
import json
from pathlib import Path
from typing import Any, Dict

import requests

DATA_URL_PREFIX = "data:image/png;base64,"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send text to the QR generation endpoint and save the returned image."
    )
    parser.add_argument("text", help="Text or URL to encode.")
    parser.add_argument("--api-key", required=True, help="Account API key (qr_...).")
    parser.add_argument("--bearer-token", required=True, help="Account bearer token (br_...).")
    parser.add_argument(
        "--host",
        default="http://127.0.0.1:5000",
        help="Server host (default: http://127.0.0.1:5000).",
    )
    parser.add_argument(
        "--authorization-header",
        action="store_true",
        help="Send credentials in a single Authorization header instead of X-API-Key/X-Bearer-Token.",
    )
    parser.add_argument(
        "--qr-output",
        type=Path,
        default=Path("qr_code.png"),
        help="Path to save the QR code image (default: qr_code.png).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10,
        help="Request timeout in seconds (default: 10).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the headers and payload instead of sending the request.",
    )
    return parser.parse_args()


def build_headers(api_key: str, bearer_token: str, combined: bool) -> Dict[str, str]:
    if combined:
        return {"Authorization": f"ApiKey {api_key}; Bearer {bearer_token}"}
    return {"X-API-Key": api_key, "X-Bearer-Token": bearer_token}


def save_qr_code(data_url: str, output_path: Path) -> None:
    if not data_url.startswith(DATA_URL_PREFIX):
        raise ValueError("qrCodeUrl is not a base64 PNG data URL")
    output_path.write_bytes(base64.b64decode(data_url[len(DATA_URL_PREFIX):]))


def main() -> None:
    args = parse_args()
    headers = build_headers(args.api_key, args.bearer_token, args.authorization_header)
    payload: Dict[str, Any] = {"text": args.text}

    if args.dry_run:
        print(json.dumps({"headers": headers, "payload": payload}, indent=2))
        return

    response = requests.post(
        f"{args.host.rstrip('/')}/generate-qr",
        json=payload,
        headers=headers,
        timeout=args.timeout,
    )

    print(f"Status: {response.status_code}")
    data = response.json()
    qr_code_url = data.pop("qrCodeUrl", None)
    print(json.dumps(data, indent=2))
    response.raise_for_status()

    if qr_code_url:
        save_qr_code(qr_code_url, args.qr_output)
        print(f"Saved QR code to {args.qr_output.resolve()}")
    else:
        print("No QR code returned in response.")


if __name__ == "__main__":
    main()
