"""\
Registry of link templates, keyed by resource type and relation name.

A registry is populated once, when the application starts, and is not
changed afterwards; links rendered for a single response are therefore
stable even if documents are built concurrently.  An application that
needs different templates constructs a new registry, possibly using
:meth:`LinkRegistry.extended`.

Templates are either strings using :meth:`str.format` syntax, callables
accepting the expansion context and returning a URL, or mappings
containing an ``href`` template and additional link properties (such as
``title`` or ``type``).

The expansion context is a mapping containing the ``type`` and ``id`` of
the resource together with its attributes.  Builders add ``format`` and,
for to-one relationships with data, ``related_id``.

"""

import re
import string
import urllib.parse

import zope.component
import zope.interface

import kt.hypermedia.interfaces
import kt.hypermedia.link


_link_properties = frozenset([
    'templated', 'name', 'title', 'type', 'profile', 'deprecation',
    'hreflang', 'meta',
])

_formats = frozenset([
    kt.hypermedia.interfaces.HAL,
    kt.hypermedia.interfaces.JSONAPI,
])


class _Quoted(dict):
    # Values substituted into templates are quoted as path segments.

    def __getitem__(self, key):
        value = super(_Quoted, self).__getitem__(key)
        if isinstance(value, str):
            return urllib.parse.quote(value, safe='')
        return value


def _self_pattern(template):
    parts = []
    fields = set()
    for literal, field, spec, conv in string.Formatter().parse(template):
        parts.append(re.escape(literal))
        if field is None:
            continue
        if field in fields or not field.isidentifier():
            # Can't reverse repeated or structured replacement fields.
            return None
        fields.add(field)
        parts.append(f'(?P<{field}>[^/?#]+)')
    if 'id' not in fields:
        return None
    return re.compile(''.join(parts) + '$')


@zope.interface.implementer(kt.hypermedia.interfaces.ILinkRegistry)
class LinkRegistry:
    """Immutable mapping from (type, relation) pairs to link templates."""

    def __init__(self, table=()):
        """Initialize registry from *table*.

        *table* is a mapping (or iterable of pairs) whose keys are
        either ``(type, relation)`` or ``(type, relation, format)``
        tuples.  Format-specific entries take precedence over general
        entries when links are resolved for that format.

        """
        entries = {}
        items = table.items() if hasattr(table, 'items') else table
        for key, template in items:
            key = tuple(key)
            if len(key) not in (2, 3):
                raise ValueError(f'link registry key must be (type, relation)'
                                 f' or (type, relation, format): {key!r}')
            if len(key) == 3 and key[2] not in _formats:
                raise ValueError(f'unknown hypermedia format in link'
                                 f' registry key: {key!r}')
            if not (isinstance(template, (str, dict)) or callable(template)):
                raise TypeError(f'unsupported link template for {key!r}:'
                                f' {template!r}')
            if isinstance(template, dict):
                if 'href' not in template:
                    raise ValueError(f'link template for {key!r} has no href')
                unknown = set(template) - _link_properties - {'href'}
                if unknown:
                    raise ValueError(f'unknown link properties for {key!r}:'
                                     f' {sorted(unknown)}')
            entries[key] = template
        self._entries = entries

        self._self_patterns = []
        for key, template in entries.items():
            if len(key) != 2 or key[1] != 'self':
                continue
            if isinstance(template, dict):
                template = template['href']
            if isinstance(template, str):
                rx = _self_pattern(template)
                if rx is not None:
                    self._self_patterns.append((key[0], rx))

    @classmethod
    def from_config(cls, config):
        """Construct a registry from a nested configuration mapping.

        The mapping is keyed by resource type; each value maps relation
        names to templates.  A relation may instead map format names
        (``hal``, ``jsonapi``) to templates, with ``*`` naming the
        template used for any other format::

            {
                'order': {
                    'self': '/orders/{id}',
                    'items': {
                        '*': '/orders/{id}/items',
                        'jsonapi': '/orders/{id}/relationships/items',
                    },
                },
            }

        """
        table = {}
        for type, relations in config.items():
            for relation, template in relations.items():
                if isinstance(template, dict) and 'href' not in template:
                    for fmt, tmpl in template.items():
                        if fmt == '*':
                            table[type, relation] = tmpl
                        else:
                            table[type, relation, fmt] = tmpl
                else:
                    table[type, relation] = template
        return cls(table)

    def extended(self, table):
        """Return a new registry with entries from *table* added.

        Entries in *table* replace entries with the same key.  This
        registry is not modified.

        """
        entries = dict(self._entries)
        other = LinkRegistry(table)
        entries.update(other._entries)
        return LinkRegistry(entries)

    def __contains__(self, key):
        return tuple(key) in self._entries

    def __len__(self):
        return len(self._entries)

    def _lookup(self, type, relation, context):
        fmt = context.get('format')
        if fmt is not None:
            template = self._entries.get((type, relation, fmt))
            if template is not None:
                return template
        template = self._entries.get((type, relation))
        if template is None:
            raise kt.hypermedia.interfaces.UnknownRelationError(type, relation)
        return template

    def _expand(self, type, relation, template, context):
        if callable(template):
            return template(context)
        try:
            return template.format_map(_Quoted(context))
        except KeyError as e:
            raise kt.hypermedia.interfaces.MalformedDescriptorError(
                f'link template for relation {relation!r} of type {type!r}'
                f' requires {e.args[0]!r}') from None

    def resolve(self, type, relation, context=None):
        context = dict(context or {})
        context.setdefault('type', type)
        template = self._lookup(type, relation, context)
        if isinstance(template, dict):
            template = template['href']
        return self._expand(type, relation, template, context)

    def link(self, type, relation, context=None):
        context = dict(context or {})
        context.setdefault('type', type)
        template = self._lookup(type, relation, context)
        if isinstance(template, dict):
            props = dict(template)
            href = self._expand(type, relation, props.pop('href'), context)
            return kt.hypermedia.link.Link(href, **props)
        return kt.hypermedia.link.Link(
            self._expand(type, relation, template, context))

    def identify(self, href):
        parts = urllib.parse.urlsplit(href)
        for type, rx in self._self_patterns:
            for candidate in (href, parts.path):
                m = rx.match(candidate)
                if m is not None:
                    return type, urllib.parse.unquote(m.group('id'))
        return None


def context_for(descriptor, **kw):
    """Return the template expansion context for *descriptor*.

    Additional keyword arguments are added to the context.

    """
    context = dict(descriptor.attributes)
    context['type'] = descriptor.type
    context['id'] = descriptor.id
    context.update(kw)
    return context


def get_registry():
    """Return the link registry registered as a utility."""
    return zope.component.getUtility(kt.hypermedia.interfaces.ILinkRegistry)
