"""\
Client-side discovery of resources by following hypermedia links.

A :class:`DiscoveryWalker` starts from a single URL and follows links
breadth-first, building a :class:`DiscoveredGraph` of the resources it
finds and the relationships between them.  Nothing is known about the
API up front; resource types, identifiers and relations all come from
the documents themselves.

Both HAL and JSON:API documents are understood; the format of each
document is detected from its shape rather than its media type.

JSON:API documents identify their resources explicitly.  HAL documents
do not, so an *identify* callable maps the ``self`` link of a HAL
document to a ``(type, id)`` pair.  HAL documents whose ``self`` link
cannot be identified are treated as collections: their embedded
resources are the targets of the link that led to the collection.

"""

import asyncio
import collections
import inspect
import json
import logging
import typing
import urllib.parse

import kt.hypermedia.interfaces


logger = logging.getLogger(__name__)


Edge = collections.namedtuple('Edge', 'source relation target')
Edge.__doc__ = """Directed relationship between two discovered resources."""

DanglingLink = collections.namedtuple('DanglingLink', 'source relation url')
DanglingLink.__doc__ = """\
Link from a discovered resource to a URL never identified as a resource.

This happens when the URL could not be fetched or parsed, or was beyond
the depth limit of the traversal.
"""


class Node:
    """Snapshot of a discovered resource."""

    __slots__ = 'type', 'id', 'attributes', 'url'

    def __init__(self, type, id, attributes=None, url=None):
        self.type = type
        self.id = id
        self.attributes = dict(attributes or {})
        self.url = url

    @property
    def key(self):
        return self.type, self.id

    def __repr__(self):
        return f'{self.__class__.__name__}({self.type!r}, {self.id!r})'


class DiscoveredGraph:
    """Resources and relationships discovered in one traversal session."""

    def __init__(self):
        self.nodes = {}
        self.edges = set()
        self.dangling = set()
        self.failures = {}

    def __contains__(self, key):
        return tuple(key) in self.nodes

    def __len__(self):
        return len(self.nodes)

    def merge(self, node):
        """Record *node*, replacing any earlier snapshot of the resource."""
        self.nodes[node.key] = node

    def types(self):
        """Return sorted list of resource types discovered."""
        return sorted(set(key[0] for key in self.nodes))

    def instances(self, type):
        """Return nodes of the given *type*, ordered by identifier."""
        return [self.nodes[key] for key in sorted(self.nodes)
                if key[0] == type]

    def related(self, key, relation=None):
        """Return keys of resources related to *key*.

        If *relation* is given, only targets of edges with that relation
        are returned.

        """
        key = tuple(key)
        return sorted(edge.target for edge in self.edges
                      if edge.source == key
                      and (relation is None or edge.relation == relation))


# -------
# Parsing


class ParsedDocument:
    """Resources, relationships and outgoing links found in one document."""

    def __init__(self, format):
        self.format = format
        self.nodes = []
        self.edges = []
        self.links = []
        self.targets = []


def normalize_url(url):
    """Normalize *url* for comparison.

    The scheme and host are lower-cased, fragments are removed, and
    trailing slashes are removed from non-root paths.

    """
    url, _ = urllib.parse.urldefrag(url)
    parts = urllib.parse.urlsplit(url)
    path = parts.path
    if len(path) > 1:
        path = path.rstrip('/') or '/'
    return urllib.parse.urlunsplit((
        parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ''))


def path_identifier(href):
    """Identify resources using the ``/<collection>/<id>`` convention.

    Returns ``None`` for any URL with a path of a different shape.

    """
    path = urllib.parse.urlsplit(href).path
    segments = [seg for seg in path.split('/') if seg]
    if len(segments) != 2:
        return None
    return segments[0], urllib.parse.unquote(segments[1])


def detect_format(document):
    if not isinstance(document, dict):
        return None
    if '_links' in document or '_embedded' in document:
        return kt.hypermedia.interfaces.HAL
    if 'data' in document or 'relationships' in document:
        return kt.hypermedia.interfaces.JSONAPI
    return None


def _href(link):
    # HAL link objects, JSON:API link objects, or plain JSON:API strings.
    if isinstance(link, str):
        return link
    if isinstance(link, dict):
        href = link.get('href')
        if isinstance(href, str) and not link.get('templated'):
            return href
    return None


def _absolute(base, href):
    # Invalid URLs (such as an unbalanced IPv6 host) are skipped.
    if not href:
        return None
    try:
        return normalize_url(urllib.parse.urljoin(base, href))
    except ValueError:
        logger.debug('ignoring invalid link %r in %s', href, base)
        return None


def _as_list(value):
    return value if isinstance(value, list) else [value]


def _parse_hal_resource(doc, base, identify, parsed):
    links = doc.get('_links') or {}
    key = None
    self_url = _absolute(base, _href(links.get('self')))
    if self_url:
        key = identify(self_url)
    if key is not None:
        attributes = {name: value for name, value in doc.items()
                      if not name.startswith('_')}
        parsed.nodes.append(Node(key[0], str(key[1]), attributes, self_url))
        key = key[0], str(key[1])

    for relation, value in links.items():
        if relation in ('self', 'curies'):
            continue
        for link in _as_list(value):
            url = _absolute(base, _href(link))
            if url:
                parsed.links.append((key, relation, url))

    members = []
    for relation, value in (doc.get('_embedded') or {}).items():
        for sub in _as_list(value):
            if not isinstance(sub, dict):
                continue
            subkey, submembers = _parse_hal_resource(
                sub, base, identify, parsed)
            subkeys = [subkey] if subkey is not None else submembers
            for target in subkeys:
                if key is not None:
                    parsed.edges.append(Edge(key, relation, target))
                else:
                    members.append(target)
    return key, members


def parse_hal(document, url, identify):
    parsed = ParsedDocument(kt.hypermedia.interfaces.HAL)
    key, members = _parse_hal_resource(document, url, identify, parsed)
    parsed.targets = [key] if key is not None else members
    return parsed


def _jsonapi_key(ob):
    type, id = ob['type'], ob['id']
    if not isinstance(type, str) or id is None:
        raise TypeError('resource identifier requires type and id')
    return type, str(id)


def _parse_jsonapi_resource(res, base, parsed):
    key = _jsonapi_key(res)
    links = res.get('links') or {}
    self_url = _absolute(base, _href(links.get('self')))
    parsed.nodes.append(
        Node(key[0], key[1], res.get('attributes') or {}, self_url))

    for relation, rel in (res.get('relationships') or {}).items():
        data = rel.get('data')
        if data is not None:
            for ident in _as_list(data):
                parsed.edges.append(Edge(key, relation, _jsonapi_key(ident)))
        related = (rel.get('links') or {}).get('related')
        url = _absolute(base, _href(related))
        if url:
            parsed.links.append((key, relation, url))
    return key


def parse_jsonapi(document, url):
    parsed = ParsedDocument(kt.hypermedia.interfaces.JSONAPI)
    data = document.get('data')
    if data is None:
        primary = []
    elif isinstance(data, list):
        primary = data
    else:
        primary = [data]
    for res in primary:
        parsed.targets.append(_parse_jsonapi_resource(res, url, parsed))
    for res in document.get('included') or ():
        _parse_jsonapi_resource(res, url, parsed)
    for name, link in (document.get('links') or {}).items():
        link_url = _absolute(url, _href(link))
        if link_url and name != 'self':
            parsed.links.append((None, name, link_url))
    return parsed


def parse(url, body, content_type=None, identify=path_identifier):
    """Parse a fetched document.

    *body* may be a decoded mapping, or ``str`` or ``bytes`` containing
    JSON.  Raises :exc:`~kt.hypermedia.interfaces.UnrecognizedFormatError`
    if the document is neither HAL nor JSON:API.

    """
    Unrecognized = kt.hypermedia.interfaces.UnrecognizedFormatError
    document = body
    if isinstance(document, bytes):
        try:
            document = document.decode('utf-8')
        except UnicodeDecodeError:
            raise Unrecognized(url, content_type) from None
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except (RecursionError, ValueError):
            # Includes documents nested too deeply to decode.
            raise Unrecognized(url, content_type) from None
    fmt = detect_format(document)
    try:
        if fmt == kt.hypermedia.interfaces.HAL:
            return parse_hal(document, url, identify)
        if fmt == kt.hypermedia.interfaces.JSONAPI:
            return parse_jsonapi(document, url)
    except (AttributeError, KeyError, RecursionError, TypeError, ValueError):
        # Shape matched a format, but the content doesn't follow it.
        raise Unrecognized(url, content_type) from None
    raise Unrecognized(url, content_type)


# ---------
# Traversal


_SKIPPED = object()
_DISCARDED = object()


class _Session:
    """State of a single traversal."""

    def __init__(self):
        self.graph = DiscoveredGraph()
        self.seen = set()
        self.targets = {}
        self.pending = collections.defaultdict(list)

    def enqueue(self, url):
        if url in self.seen:
            return False
        self.seen.add(url)
        return True

    def link(self, source, relation, url):
        if source is None:
            return
        if url in self.targets:
            for target in self.targets[url]:
                self.graph.edges.add(Edge(source, relation, target))
        else:
            self.pending[url].append((source, relation))

    def resolve(self, url, targets):
        self.targets[url] = list(targets)
        for source, relation in self.pending.pop(url, ()):
            for target in targets:
                self.graph.edges.add(Edge(source, relation, target))

    def merge(self, url, parsed):
        graph = self.graph
        for node in parsed.nodes:
            graph.merge(node)
            if node.url and node.url != url:
                # Known now; no need to fetch it separately.
                self.seen.add(node.url)
                self.resolve(node.url, [node.key])
        graph.edges.update(parsed.edges)
        self.resolve(url, parsed.targets)
        for source, relation, link_url in parsed.links:
            self.link(source, relation, link_url)

    def finish(self):
        for url, sources in self.pending.items():
            for source, relation in sources:
                self.graph.dangling.add(DanglingLink(source, relation, url))
        self.pending.clear()
        return self.graph


class DiscoveryWalker:
    """Breadth-first traversal of a hypermedia API.

    Documents at the same depth are fetched concurrently, up to
    *concurrency* at a time; all fetches for one depth complete before
    any document at the next depth is requested.

    """

    def __init__(self,
                 fetch: typing.Callable,
                 max_depth: int,
                 concurrency: int = 4,
                 identify: typing.Optional[typing.Callable] = None,
                 registry=None):
        """Initialize walker.

        :param fetch:
            Callable accepting a URL and returning a ``(body,
            content_type)`` pair, or an awaitable producing one.
            Exceptions raised by *fetch* are recorded as failures.
        :param max_depth:
            Maximum number of links followed from the seed URL.
        :param concurrency:
            Maximum number of fetches in progress at once.
        :param identify:
            Callable mapping the ``self`` URL of a HAL document to a
            ``(type, id)`` pair, or ``None``.
        :param registry:
            Link registry used to identify HAL documents if *identify*
            is not provided.  If neither is provided,
            :func:`path_identifier` is used.

        """
        if max_depth < 0:
            raise ValueError('max_depth cannot be negative')
        if concurrency < 1:
            raise ValueError('concurrency must be at least 1')
        if identify is None:
            if registry is not None:
                registry = kt.hypermedia.interfaces.ILinkRegistry(registry)
                identify = registry.identify
            else:
                identify = path_identifier
        self.fetch = fetch
        self.max_depth = max_depth
        self.concurrency = concurrency
        self.identify = identify

    async def discover(self, seed_url, cancel=None):
        """Traverse links starting at *seed_url* and return the graph.

        *cancel* may be an :class:`asyncio.Event`; once set, no further
        fetches are started, results of fetches still in progress are
        discarded, and the graph built so far is returned.

        """
        session = _Session()
        seed = normalize_url(seed_url)
        session.enqueue(seed)
        frontier = [seed]
        semaphore = asyncio.Semaphore(self.concurrency)
        depth = 0

        while frontier:
            logger.debug('discovery depth %d: fetching %d documents',
                         depth, len(frontier))
            results = await asyncio.gather(*[
                self._fetch(url, semaphore, cancel) for url in frontier])

            next_frontier = []
            for url, result in zip(frontier, results):
                if result is _SKIPPED or result is _DISCARDED:
                    continue
                if isinstance(result, Exception):
                    session.graph.failures[url] = result
                    continue
                session.merge(url, result)
                if depth + 1 > self.max_depth:
                    continue
                for _, _, link_url in result.links:
                    if session.enqueue(link_url):
                        next_frontier.append(link_url)

            if cancel is not None and cancel.is_set():
                logger.info('discovery from %s cancelled at depth %d',
                            seed, depth)
                break
            frontier = next_frontier
            depth += 1

        graph = session.finish()
        logger.info('discovered %d resources and %d relationships from %s'
                    ' (%d failures)', len(graph.nodes), len(graph.edges),
                    seed, len(graph.failures))
        return graph

    async def _fetch(self, url, semaphore, cancel):
        async with semaphore:
            if cancel is not None and cancel.is_set():
                return _SKIPPED
            try:
                result = self.fetch(url)
                if inspect.isawaitable(result):
                    result = await result
                body, content_type = result
            except kt.hypermedia.interfaces.FetchFailure as e:
                logger.warning('%s', e)
                return e
            except Exception as e:
                failure = kt.hypermedia.interfaces.FetchFailure(url, str(e))
                failure.__cause__ = e
                logger.warning('%s', failure)
                return failure

        if cancel is not None and cancel.is_set():
            logger.debug('discarding %s fetched after cancellation', url)
            return _DISCARDED
        try:
            return parse(url, body, content_type, self.identify)
        except kt.hypermedia.interfaces.UnrecognizedFormatError as e:
            logger.warning('%s', e)
            return e


async def discover(seed_url, fetch, max_depth, concurrency=4, cancel=None,
                   identify=None, registry=None):
    """Traverse a hypermedia API starting at *seed_url*.

    This is a convenience wrapper around :class:`DiscoveryWalker`.

    """
    walker = DiscoveryWalker(fetch, max_depth, concurrency=concurrency,
                             identify=identify, registry=registry)
    return await walker.discover(seed_url, cancel=cancel)
