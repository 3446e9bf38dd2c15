# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "tqdm",
#   "humanize"
# ]
# ///

"""
Downloads the per-page PDF files and thumbnails of a document's derivative
from Autodesk Platform Services (APS, formerly Forge).

Flow: authenticates with a client-credentials grant, resolves the document urn
(either the configured literal urn, or an item's tip version via the Data
Management API), fetches the derivative manifest, picks the `pdf-page` and
`thumbnail` resources of every viewable, then writes each resource verbatim to
`download/<document-urn>/<suffix-of-resource-urn>`. The download directory is
purged at the start of every run.

Usage:
  APS_CLIENT_ID=... APS_CLIENT_SECRET=... uv run ./download_derivative_pages.py
  uv run ./download_derivative_pages.py --document-urn dXJuOm...
  uv run ./download_derivative_pages.py --project-id b.e3269b73-... --item-id urn:adsk.wipprod:dm.lineage:...

Args (all optional; defaults are the module constants below):
  --document-urn
  --resolve-from-item (use PROJECT_ID / ITEM_ID instead of DOCUMENT_URN)
  --project-id
  --item-id
  --output-dir

Credentials are only read from the environment (APS_CLIENT_ID / APS_CLIENT_SECRET,
or the older FORGE_CLIENT_ID / FORGE_CLIENT_SECRET).
"""

from __future__ import annotations

import argparse
import logging
import os
import pprint
import shutil
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import quote

import httpx
import humanize
from tqdm import tqdm

## setup logging ----------------------------------------------------
log_level_name: str = os.getenv('LOG_LEVEL', 'INFO').upper()
log_level = getattr(
    logging, log_level_name, logging.INFO
)  # maps the string name to the corresponding logging level constant; defaults to INFO
logging.basicConfig(
    level=log_level,
    format='[%(asctime)s] %(levelname)s [%(module)s-%(funcName)s()::%(lineno)d] %(message)s',
    datefmt='%d/%b/%Y %H:%M:%S',
)
if log_level <= logging.INFO:
    for noisy in ('httpx', 'httpcore'):  # prevent httpx from logging
        lg = logging.getLogger(noisy)
        lg.setLevel(logging.WARNING)
        lg.propagate = False  # don't bubble up to root
log = logging.getLogger(__name__)

## constants --------------------------------------------------------
DEFAULT_BASE_URL: str = 'https://developer.api.autodesk.com'
TOKEN_PATH: str = '/authentication/v2/token'
MANIFEST_PATH_TPL: str = '/modelderivative/v2/designdata/{urn}/manifest'
ITEM_PATH_TPL: str = '/data/v1/projects/{project_id}/items/{item_id}'
VERSION_PATH_TPL: str = '/data/v1/projects/{project_id}/versions/{version_id}'

SCOPES: tuple[str, ...] = (
    'data:read',
    'data:write',
    'data:create',
    'data:search',
    'bucket:create',
    'bucket:read',
    'bucket:update',
    'bucket:delete',
)

PDF_PAGE_ROLE: str = 'pdf-page'
THUMBNAIL_ROLE: str = 'thumbnail'
RESOURCE_TYPE: str = 'resource'
BIM360_FILE_EXTENSION_TYPE: str = 'versions:autodesk.bim360:File'

## targets (overridable from the command line)
DOCUMENT_URN: str = 'dXJuOmFkc2sud2lTGHJZGZDpmcy5maWxlOnZmLkxiQndYWDhJUU0yLVc4bnRTdHRDR0E_dmVyc2lvbj0x'
PROJECT_ID: str = 'b.e3269b73-141a-4e6f-8487-ff5e8f28b9cc'
ITEM_ID: str = 'urn:adsk.wipprod:dm.lineage:FsWJVHw5QuG_VOj5KjTXag'

DEFAULT_DOWNLOAD_ROOT: Path = Path(__file__).resolve().parent / 'download'
USER_AGENT: str = 'aps-derivative-pages/1.0'


class FatalRunError(Exception):
    """
    Raised for conditions that abort the whole run: authentication failure,
    an unresolvable document urn, an unreadable manifest, or no pages to download.
    """


@dataclass(frozen=True)
class ApsConfig:
    """
    Holds the client credentials, scope set and API host for one run.
    """

    client_id: str
    client_secret: str
    scopes: tuple[str, ...] = SCOPES
    base_url: str = DEFAULT_BASE_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ApsConfig:
        """
        Reads credentials from the environment; missing values become empty strings.
        """
        env: Mapping[str, str] = os.environ if environ is None else environ
        base_url: str = env.get('APS_BASE_URL') or DEFAULT_BASE_URL
        return cls(
            client_id=_first_env_value(env, 'APS_CLIENT_ID', 'FORGE_CLIENT_ID'),
            client_secret=_first_env_value(env, 'APS_CLIENT_SECRET', 'FORGE_CLIENT_SECRET'),
            base_url=base_url.rstrip('/'),
        )


class UrlBuilder:
    """
    Builds the APS endpoint urls used by this script from a configurable base host.
    """

    def __init__(self, base: str = DEFAULT_BASE_URL) -> None:
        self.base: str = base.rstrip('/')

    def token_url(self) -> str:
        return f'{self.base}{TOKEN_PATH}'

    def manifest_url(self, document_urn: str) -> str:
        return self.base + MANIFEST_PATH_TPL.format(urn=quote(document_urn, safe=''))

    def derivative_url(self, document_urn: str, resource_urn: str) -> str:
        ## the resource urn contains `:` and `/`, so it goes in as a single encoded segment
        return f'{self.manifest_url(document_urn)}/{quote(resource_urn, safe="")}'

    def item_url(self, project_id: str, item_id: str) -> str:
        return self.base + ITEM_PATH_TPL.format(
            project_id=quote(project_id, safe=''), item_id=quote(item_id, safe='')
        )

    def version_url(self, project_id: str, version_id: str) -> str:
        return self.base + VERSION_PATH_TPL.format(
            project_id=quote(project_id, safe=''), version_id=quote(version_id, safe='')
        )

    def version_refs_url(self, project_id: str, version_id: str) -> str:
        return f'{self.version_url(project_id, version_id)}/relationships/refs'


@dataclass(frozen=True)
class ApsSession:
    """
    A config plus the bearer token obtained for it; handed to every API call.
    """

    config: ApsConfig
    access_token: str

    @property
    def urls(self) -> UrlBuilder:
        return UrlBuilder(self.config.base_url)

    def auth_headers(self) -> dict[str, str]:
        return {'Authorization': f'Bearer {self.access_token}'}


@dataclass
class ResourceNode:
    """
    One node of a manifest tree. Every field is optional because manifests only
    carry the keys relevant to each node.
    """

    role: str | None = None
    type: str | None = None
    urn: str | None = None
    name: str | None = None
    mime: str | None = None
    resolution: list[float] | None = None
    children: list[ResourceNode] = field(default_factory=list)

    @classmethod
    def from_json(cls, node_json: Mapping[str, object]) -> ResourceNode:
        children_json: object = node_json.get('children')
        children: list[ResourceNode] = []
        if isinstance(children_json, list):
            children = [cls.from_json(child) for child in children_json if isinstance(child, Mapping)]
        resolution: object = node_json.get('resolution')
        return cls(
            role=_str_or_none(node_json.get('role')),
            type=_str_or_none(node_json.get('type')),
            urn=_str_or_none(node_json.get('urn')),
            name=_str_or_none(node_json.get('name')),
            mime=_str_or_none(node_json.get('mime')),
            resolution=list(resolution) if isinstance(resolution, list) else None,
            children=children,
        )

    def resolution_label(self) -> str:
        """
        Returns the resolution as `WxH` (e.g. `200x200`), or `unknown`.
        """
        if not self.resolution:
            return 'unknown'
        parts: list[str] = []
        for value in self.resolution:
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            parts.append(str(value))
        return 'x'.join(parts)

    def to_json(self) -> dict[str, object]:
        return {'urn': self.urn, 'role': self.role, 'mime': self.mime, 'resolution': self.resolution}


@dataclass
class PageDescriptor:
    """
    One viewable of the manifest: its pdf-page resource (if any) and its thumbnails.
    """

    name: str
    file: ResourceNode | None
    thumbnails: list[ResourceNode] = field(default_factory=list)

    def to_json(self) -> dict[str, object]:
        return {
            'name': self.name,
            'file': self.file.to_json() if self.file is not None else None,
            'thumbnails': [thumbnail.to_json() for thumbnail in self.thumbnails],
        }


## manifest filtering -----------------------------------------------
def is_eligible(node: ResourceNode, role: str, type_: str) -> bool:
    """
    True when the node carries both `role` and `type` and they match.
    """
    if node.role is None or node.type is None:
        return False
    return node.role == role and node.type == type_


def walk_nodes(nodes: list[ResourceNode]) -> Iterator[ResourceNode]:
    """
    Yields nodes depth-first, each node before its own children.
    """
    for node in nodes:
        yield node
        yield from walk_nodes(node.children)


def find_first(nodes: list[ResourceNode], role: str, type_: str) -> ResourceNode | None:
    return next((node for node in walk_nodes(nodes) if is_eligible(node, role, type_)), None)


def find_all(nodes: list[ResourceNode], role: str, type_: str) -> list[ResourceNode]:
    return [node for node in walk_nodes(nodes) if is_eligible(node, role, type_)]


def build_pages(manifest_json: Mapping[str, object]) -> list[PageDescriptor]:
    """
    Builds one PageDescriptor per viewable of the manifest's first derivative.

    Only the first derivative is looked at. Within each viewable, the first
    `pdf-page` resource becomes the page's file and every `thumbnail` resource
    is kept. A viewable without a pdf-page resource still gets a descriptor,
    with `file` set to None.
    """
    derivatives: object = manifest_json.get('derivatives')
    if not isinstance(derivatives, list) or not derivatives or not isinstance(derivatives[0], Mapping):
        raise FatalRunError('manifest has no derivatives')
    viewables: object = derivatives[0].get('children')
    if not isinstance(viewables, list):
        viewables = []
    pages: list[PageDescriptor] = []
    for viewable_json in viewables:
        if not isinstance(viewable_json, Mapping):
            continue
        viewable = ResourceNode.from_json(viewable_json)
        pages.append(
            PageDescriptor(
                name=viewable.name or '',
                file=find_first(viewable.children, PDF_PAGE_ROLE, RESOURCE_TYPE),
                thumbnails=find_all(viewable.children, THUMBNAIL_ROLE, RESOURCE_TYPE),
            )
        )
    return pages


class Authenticator:
    """
    Exchanges client credentials for a bearer token (two-legged OAuth).
    """

    def __init__(self, client: httpx.Client) -> None:
        self.client: httpx.Client = client

    def authenticate(self, config: ApsConfig) -> ApsSession:
        """
        Returns a session holding a fresh token; raises FatalRunError on any failure.
        """
        url: str = UrlBuilder(config.base_url).token_url()
        data: dict[str, str] = {'grant_type': 'client_credentials', 'scope': ' '.join(config.scopes)}
        log.debug(f'requesting token from ``{url}``')
        try:
            resp: httpx.Response = self.client.post(url, data=data, auth=(config.client_id, config.client_secret))
        except httpx.HTTPError as exc:
            raise FatalRunError(f'Failed to get your token ({exc})') from exc
        if not resp.is_success:
            raise FatalRunError(f'Failed to get your token (HTTP {resp.status_code})')
        try:
            token: object = resp.json().get('access_token')
        except (ValueError, AttributeError) as exc:
            raise FatalRunError('Failed to get your token (unreadable response)') from exc
        if not isinstance(token, str) or not token:
            raise FatalRunError('Failed to get your token (no access_token in response)')
        return ApsSession(config=config, access_token=token)


class ApiClient:
    """
    Wraps the authenticated APS calls.
    - JSON fetches raise FatalRunError, since everything fetched as JSON is a prerequisite.
    - Resource downloads return a bool; a failed download only affects that one resource.
    """

    def __init__(self, client: httpx.Client, session: ApsSession) -> None:
        self.client: httpx.Client = client
        self.session: ApsSession = session

    def get_json(self, url: str, *, what: str) -> dict[str, object]:
        log.debug(f'trying {what} url, ``{url}``')
        try:
            resp: httpx.Response = self.client.get(url, headers=self.session.auth_headers())
        except httpx.HTTPError as exc:
            raise FatalRunError(f'Failed to fetch the {what} ({exc})') from exc
        if not resp.is_success:
            raise FatalRunError(f'Failed to fetch the {what} (HTTP {resp.status_code})')
        try:
            data: object = resp.json()
        except ValueError as exc:
            raise FatalRunError(f'Failed to fetch the {what} (response is not JSON)') from exc
        if not isinstance(data, dict):
            raise FatalRunError(f'Failed to fetch the {what} (unexpected JSON shape)')
        return data

    def fetch_manifest_json(self, document_urn: str) -> dict[str, object]:
        return self.get_json(self.session.urls.manifest_url(document_urn), what='manifest')

    def fetch_item_json(self, project_id: str, item_id: str) -> dict[str, object]:
        return self.get_json(self.session.urls.item_url(project_id, item_id), what='item')

    def fetch_version_json(self, project_id: str, version_id: str) -> dict[str, object]:
        return self.get_json(self.session.urls.version_url(project_id, version_id), what='version')

    def fetch_version_refs_json(self, project_id: str, version_id: str) -> dict[str, object]:
        return self.get_json(self.session.urls.version_refs_url(project_id, version_id), what='version refs')

    def fetch_pages(self, document_urn: str) -> list[PageDescriptor]:
        manifest_json: dict[str, object] = self.fetch_manifest_json(document_urn)
        status: object = manifest_json.get('status')
        if status is not None and status != 'success':
            log.warning(f'manifest status is ``{status}``; some pages may be missing')
        return build_pages(manifest_json)

    def download(self, document_urn: str, resource_urn: str, destination: Path) -> bool:
        """
        Streams one derivative resource to `destination`, byte for byte.

        Bytes go to `<destination>.tmp` and are moved into place only once the
        whole body has arrived, so a failed request never creates, truncates or
        half-writes `destination`.
        """
        url: str = self.session.urls.derivative_url(document_urn, resource_urn)
        ## identity: ask for the stored bytes as-is, no transfer compression to undo
        headers: dict[str, str] = {**self.session.auth_headers(), 'Accept-Encoding': 'identity'}
        tmp_path: Path = destination.with_name(f'{destination.name}.tmp')
        log.debug(f'downloading ``{resource_urn}`` to ``{destination}``')
        try:
            with self.client.stream('GET', url, headers=headers) as resp:
                if not resp.is_success:
                    log.warning(f'download of ``{resource_urn}`` failed (HTTP {resp.status_code})')
                    return False
                destination.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open('wb') as fh:
                    for chunk in resp.iter_bytes():
                        fh.write(chunk)
            os.replace(tmp_path, destination)
        except httpx.HTTPError as exc:
            log.warning(f'download of ``{resource_urn}`` failed ({exc})')
            tmp_path.unlink(missing_ok=True)
            return False
        except OSError as exc:
            log.warning(f'writing ``{destination}`` failed ({exc})')
            tmp_path.unlink(missing_ok=True)
            return False
        return True


class VersionResolver:
    """
    Resolves a Data Management item to the derivative urn of its tip version.
    - Plain uploads carry the urn on the version's `relationships.derivatives`.
    - Documents extracted into a BIM 360 / ACC Plan folder (those with a
      `viewableGuid`) point at the source file version through `relationships/refs`,
      and the urn comes from that referenced version.
    """

    def __init__(self, api: ApiClient) -> None:
        self.api: ApiClient = api

    def resolve_document_urn(self, project_id: str, item_id: str) -> str | None:
        item_json: dict[str, object] = self.api.fetch_item_json(project_id, item_id)
        version_id: object = _dig(item_json, 'data', 'relationships', 'tip', 'data', 'id')
        if not isinstance(version_id, str) or not version_id:
            log.warning(f'item ``{item_id}`` has no tip version')
            return None
        log.debug(f'tip version, ``{version_id}``')
        version_json: dict[str, object] = self.api.fetch_version_json(project_id, version_id)
        viewable_guid: object = _dig(version_json, 'data', 'attributes', 'extension', 'data', 'viewableGuid')
        if isinstance(viewable_guid, str) and viewable_guid.strip():
            refs_json: dict[str, object] = self.api.fetch_version_refs_json(project_id, version_id)
            return self.derivative_urn_from_refs(refs_json)
        urn: object = _dig(version_json, 'data', 'relationships', 'derivatives', 'data', 'id')
        return urn if isinstance(urn, str) and urn else None

    @staticmethod
    def derivative_urn_from_refs(refs_json: Mapping[str, object]) -> str | None:
        included: object = refs_json.get('included')
        if not isinstance(included, list):
            return None
        for entry in included:
            if not isinstance(entry, Mapping) or entry.get('type') != 'versions':
                continue
            if _dig(entry, 'attributes', 'extension', 'type') != BIM360_FILE_EXTENSION_TYPE:
                continue
            urn: object = _dig(entry, 'relationships', 'derivatives', 'data', 'id')
            return urn if isinstance(urn, str) and urn else None
        return None


class DownloadDirectoryManager:
    """
    Owns `<download_root>/<document_urn>`: purges it per run and maps resource urns to paths in it.
    """

    def __init__(self, download_root: Path, document_urn: str) -> None:
        self.document_urn: str = document_urn
        self.run_dir: Path = download_root / document_urn

    def recreate(self) -> Path:
        """
        Removes any previous download dir and creates an empty one; raises FatalRunError if that fails.
        """
        try:
            if self.run_dir.exists():
                log.debug(f'removing previous download dir, ``{self.run_dir}``')
                shutil.rmtree(self.run_dir)
            self.run_dir.mkdir(parents=True)
        except OSError as exc:
            raise FatalRunError(f'Unable to prepare the download dir `{self.run_dir}` ({exc})') from exc
        return self.run_dir

    def destination_for(self, resource_urn: str) -> Path | None:
        """
        Maps `<anything><document_urn>/sub/file.ext` to `<run_dir>/sub/file.ext`.

        The suffix is the segment between the first and a possible second
        occurrence of the document urn. Returns None when the document urn does
        not occur in the resource urn, when nothing follows it, or when the
        suffix would land outside run_dir.
        """
        segments: list[str] = resource_urn.split(self.document_urn)
        if len(segments) < 2:
            return None
        suffix: str = segments[1].lstrip('/')
        if not suffix:
            return None
        destination: Path = self.run_dir / suffix
        if not destination.resolve().is_relative_to(self.run_dir.resolve()):
            return None
        return destination


class PageDownloader:
    """
    Downloads each page's PDF and thumbnails, one resource at a time.
    - A missing or failed PDF is logged; that page's thumbnails are still tried.
    - Each failed thumbnail is logged on its own and never stops its siblings.
    - Keeps success/failure counts and total bytes for the closing summary.
    """

    def __init__(self, api: ApiClient, directory: DownloadDirectoryManager) -> None:
        self.api = api
        self.directory = directory
        self.succeeded: int = 0
        self.failed: int = 0
        self.bytes_written: int = 0

    def download_resource(self, node: ResourceNode) -> bool:
        if not node.urn:
            log.warning('resource node has no urn; skipping')
            self.failed += 1
            return False
        destination: Path | None = self.directory.destination_for(node.urn)
        if destination is None:
            log.warning(
                f'resource urn ``{node.urn}`` does not map under document urn ``{self.directory.document_urn}``; skipping'
            )
            self.failed += 1
            return False
        if not self.api.download(self.directory.document_urn, node.urn, destination):
            self.failed += 1
            return False
        size: int = destination.stat().st_size
        log.debug(f'wrote ``{destination}`` ({humanize.naturalsize(size)})')
        self.succeeded += 1
        self.bytes_written += size
        return True

    def process_page(self, page: PageDescriptor) -> None:
        if page.file is None:
            log.error(f'No PDF file found for page `{page.name}`')
        elif not self.download_resource(page.file):
            log.error(f'Failed to download the PDF file for page `{page.name}`')
        for thumbnail in page.thumbnails:
            if not self.download_resource(thumbnail):
                log.error(f'Failed to download the thumbnail `{thumbnail.resolution_label()}` for page `{page.name}`')


@dataclass(frozen=True)
class Target:
    """
    What to download: a literal document urn, or a project/item pair to resolve.
    """

    document_urn: str | None = None
    project_id: str | None = None
    item_id: str | None = None


class CLI:
    """
    Manages command-line parsing for the script entrypoint.
    - Every argument is optional and overrides one module constant.
    - Credentials are deliberately not accepted here; they come from the environment.
    - `add_target_arguments()` is shared with show_manifest_pages.py.
    """

    @staticmethod
    def add_target_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            '--document-urn', default=None, help=f'Derivative (document) urn. Default: DOCUMENT_URN ({DOCUMENT_URN})'
        )
        parser.add_argument(
            '--resolve-from-item',
            action='store_true',
            help='Resolve the document urn from the tip version of PROJECT_ID / ITEM_ID.',
        )
        parser.add_argument('--project-id', default=None, help=f'Project id; implies --resolve-from-item. Default: {PROJECT_ID}')
        parser.add_argument('--item-id', default=None, help=f'Item (lineage) id; implies --resolve-from-item. Default: {ITEM_ID}')

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description='Download the PDF pages and thumbnails of an APS derivative.')
        CLI.add_target_arguments(parser)
        parser.add_argument(
            '--output-dir',
            default=None,
            help=f'Directory holding the per-document download folder. Default: {DEFAULT_DOWNLOAD_ROOT}',
        )
        return parser

    @staticmethod
    def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
        return CLI.build_parser().parse_args(argv)

    @staticmethod
    def target_from_args(args: argparse.Namespace) -> Target:
        if args.resolve_from_item or args.project_id or args.item_id:
            return Target(project_id=args.project_id or PROJECT_ID, item_id=args.item_id or ITEM_ID)
        return Target(document_urn=args.document_urn or DOCUMENT_URN)


def prepare_pages(client: httpx.Client, config: ApsConfig, target: Target) -> tuple[ApiClient, str, list[PageDescriptor]]:
    """
    Authenticates, resolves the document urn, and fetches + filters its manifest.
    Raises FatalRunError when any of those steps fails or no page is found.

    Called by: run_download(), show_manifest_pages.main()
    """
    session: ApsSession = Authenticator(client).authenticate(config)
    api = ApiClient(client, session)

    document_urn: str | None = target.document_urn
    if document_urn is None:
        assert target.project_id is not None and target.item_id is not None
        document_urn = VersionResolver(api).resolve_document_urn(target.project_id, target.item_id)
        if not document_urn:
            raise FatalRunError(f'Unable to resolve the derivative urn for item `{target.item_id}`')
    log.info(f'document urn, ``{document_urn}``')

    pages: list[PageDescriptor] = api.fetch_pages(document_urn)
    log.debug(f'pages, ``{pprint.pformat([page.to_json() for page in pages])}``')
    if not pages:
        raise FatalRunError('No PDF page found. Nothing to download')
    return api, document_urn, pages


def run_download(client: httpx.Client, config: ApsConfig, target: Target, download_root: Path) -> PageDownloader:
    """
    Runs the whole flow against an open httpx client and returns the downloader (for its counts).

    Called by: main()
    """
    api, document_urn, pages = prepare_pages(client, config, target)

    directory = DownloadDirectoryManager(download_root, document_urn)
    run_dir: Path = directory.recreate()
    log.info(f'downloading {len(pages)} page(s) to ``{run_dir}``')

    downloader = PageDownloader(api, directory)
    for page in tqdm(pages, total=len(pages), desc='Downloading pages'):
        downloader.process_page(page)
    return downloader


def _first_env_value(env: Mapping[str, str], *names: str) -> str:
    """
    Returns the first non-empty value among `names`, else ''.
    """
    for name in names:
        value: str | None = env.get(name)
        if value:
            return value
    return ''


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _dig(data: object, *keys: str) -> object:
    """
    Follows nested mapping keys; returns None as soon as one is missing.
    """
    current: object = data
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def main(argv: list[str] | None = None) -> int:
    """
    Downloads every PDF page and thumbnail of the target derivative.

    Flow:
    - Parses optional CLI overrides; reads credentials from the environment.
    - Authenticates; any failure aborts the run.
    - Resolves the document urn (literal, or via the item's tip version).
    - Fetches the manifest and builds the page list; an empty list aborts the run.
    - Purges and recreates `download/<document-urn>`.
    - Downloads each page's PDF, then its thumbnails; per-item failures are logged and skipped.

    Called by: dundermain
    """
    ## handle args and config ---------------------------------------
    args: argparse.Namespace = CLI.parse_args(argv)
    target: Target = CLI.target_from_args(args)
    config: ApsConfig = ApsConfig.from_env()
    if not config.client_id or not config.client_secret:
        log.warning('APS_CLIENT_ID / APS_CLIENT_SECRET are not set; authentication will likely fail')
    download_root: Path = Path(args.output_dir).expanduser().resolve() if args.output_dir else DEFAULT_DOWNLOAD_ROOT

    ## run ------------------------------------------------------------
    headers: dict[str, str] = {'user-agent': USER_AGENT}
    timeout: httpx.Timeout = httpx.Timeout(connect=30.0, read=120.0, write=60.0, pool=30.0)
    with httpx.Client(headers=headers, timeout=timeout, follow_redirects=True) as client:
        try:
            downloader: PageDownloader = run_download(client, config, target, download_root)
        except FatalRunError as exc:
            log.error(f'{exc}. Task aborted')
            return 1

    ## wrap up output -----------------------------------------------
    log.info(
        f'Done. Downloaded {downloader.succeeded} file(s) '
        f'({humanize.naturalsize(downloader.bytes_written)}); {downloader.failed} failed.'
    )
    log.info(f'Download dir: {downloader.directory.run_dir}')
    return 0

    ## end def main()


if __name__ == '__main__':
    raise SystemExit(main())
