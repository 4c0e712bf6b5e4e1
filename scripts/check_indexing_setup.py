"""
Check indexing API setup: service account material, token exchange and,
optionally, the index metadata for one URL.
"""

from __future__ import annotations

import argparse
import json

from app.config import get_indexing_api_settings
from app.indexing.client import IndexingClient
from app.indexing.errors import IndexingError, NotFoundError
from app.indexing.token_issuer import ServiceAccountCredentials, TokenIssuer
from app.logging_utils import configure_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate indexing API credentials.")
    parser.add_argument(
        "--url",
        dest="url",
        default=None,
        help="Optional public URL whose indexing metadata should be fetched.",
    )
    parser.add_argument(
        "--item-id",
        dest="item_id",
        type=int,
        default=None,
        help="Optional job id; its public URL is checked instead of --url.",
    )
    args = parser.parse_args()

    configure_logging()
    settings = get_indexing_api_settings()
    checks: dict[str, object] = {"service_account_path": settings.service_account_path}

    try:
        credentials = ServiceAccountCredentials.from_file(settings.service_account_path)
        checks["client_email"] = credentials.client_email
        issuer = TokenIssuer(
            credentials=credentials,
            token_url=settings.token_url,
            scope=settings.scope,
            timeout_seconds=settings.timeout_seconds,
        )
        token = issuer.get_token()
        checks["token"] = f"{token[:12]}..."
    except IndexingError as exc:
        checks["error"] = f"{type(exc).__name__}: {exc}"
        print(json.dumps(checks, indent=2))
        return 1

    client = IndexingClient(
        token_issuer=issuer,
        publish_url=settings.publish_url,
        metadata_url=settings.metadata_url,
        site_url=settings.site_url,
        item_url_template=settings.item_url_template,
        timeout_seconds=settings.timeout_seconds,
    )
    url = client.item_url(args.item_id) if args.item_id is not None else args.url
    if url:
        try:
            metadata = client.status(url)
            checks["metadata"] = metadata.payload
        except NotFoundError:
            checks["metadata"] = None
        except IndexingError as exc:
            checks["metadata_error"] = f"{type(exc).__name__}: {exc}"
            print(json.dumps(checks, indent=2))
            return 1

    print(json.dumps(checks, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
