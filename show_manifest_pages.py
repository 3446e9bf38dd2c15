# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "tqdm",
#   "humanize"
# ]
# ///

"""
Fetches an APS derivative manifest and prints its pages (pdf-page resource and
thumbnails per viewable) as JSON. Downloads nothing.

Usage:
  uv run ./show_manifest_pages.py
  uv run ./show_manifest_pages.py --document-urn dXJuOm...
"""

import argparse
import json
import sys
from datetime import datetime

import httpx

from download_derivative_pages import (
    CLI,
    USER_AGENT,
    ApsConfig,
    FatalRunError,
    PageDescriptor,
    Target,
    UrlBuilder,
    log,
    prepare_pages,
)


def build_listing(config: ApsConfig, document_urn: str, pages: list[PageDescriptor]) -> dict[str, object]:
    """
    Builds the JSON-ready listing of the pages of one document.
    """
    return {
        '_meta_': {
            'timestamp': datetime.now().astimezone().isoformat(),
            'manifest_url': UrlBuilder(config.base_url).manifest_url(document_urn),
            'document_urn': document_urn,
            'page_count': len(pages),
            'pages_without_pdf': sum(1 for page in pages if page.file is None),
        },
        'pages': [page.to_json() for page in pages],
    }


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse cli args.
    """
    parser = argparse.ArgumentParser(description='Print the PDF pages and thumbnails listed in an APS derivative manifest.')
    CLI.add_target_arguments(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """
    Main manager.
    """
    args = parse_args(argv)
    target: Target = CLI.target_from_args(args)
    config = ApsConfig.from_env()

    with httpx.Client(headers={'user-agent': USER_AGENT}, timeout=httpx.Timeout(30.0)) as client:
        try:
            _, document_urn, pages = prepare_pages(client, config, target)
        except FatalRunError as exc:
            log.error(f'{exc}. Task aborted')
            return 1

    listing = build_listing(config, document_urn, pages)
    print(json.dumps(listing, indent=2, ensure_ascii=False))
    return 0


if __name__ == '__main__':
    sys.exit(main())
