"""\
HAL document builder.

Documents follow the `JSON Hypertext Application Language
<https://datatracker.ietf.org/doc/html/draft-kelly-json-hal>`__ draft:
attributes appear at the top level of the document, ``_links`` maps
relation names to link objects, and ``_embedded`` maps relation names to
embedded documents.

"""

import zope.interface

import kt.hypermedia.interfaces
import kt.hypermedia.registry
import kt.hypermedia.serializers


@zope.interface.implementer(kt.hypermedia.interfaces.IDocumentBuilder)
class HALBuilder:
    """Build HAL documents from resource descriptors.

    Every document carries a ``self`` link, and a link for each
    relationship of the resource, in the order the relationships are
    declared.  Relationships carrying complete descriptors are also
    embedded; the link remains present.

    """

    format = kt.hypermedia.interfaces.HAL
    content_type = kt.hypermedia.interfaces.HAL_CONTENT_TYPE

    def __init__(self, registry=None, collection_relation='items'):
        """Initialize builder.

        :param registry:
            Link registry used to generate all links.  If omitted, the
            :class:`~kt.hypermedia.interfaces.ILinkRegistry` utility is
            used.
        :param collection_relation:
            Name of the ``_embedded`` member holding the members of a
            collection document.

        """
        if registry is None:
            registry = kt.hypermedia.registry.get_registry()
        self.registry = kt.hypermedia.interfaces.ILinkRegistry(registry)
        self.collection_relation = collection_relation

    def build(self, descriptor):
        descriptor = kt.hypermedia.interfaces.IResourceDescriptor(descriptor)
        descriptor.validate()
        return self._document(descriptor)

    def build_collection(self, descriptors, href):
        descriptors = [kt.hypermedia.interfaces.IResourceDescriptor(ob)
                       for ob in descriptors]
        for descriptor in descriptors:
            descriptor.validate()
        return {
            '_links': {
                'self': dict(href=href),
            },
            '_embedded': {
                self.collection_relation: [
                    self._document(descriptor) for descriptor in descriptors
                ],
            },
        }

    def _link(self, descriptor, relation, context):
        return kt.hypermedia.serializers.hal_link(
            self.registry.link(descriptor.type, relation, context))

    def _document(self, descriptor):
        context = kt.hypermedia.registry.context_for(
            descriptor, format=self.format)
        links = dict(self=self._link(descriptor, 'self', context))
        embedded = {}
        for rel in descriptor.relationships:
            targets = rel.targets()
            relctx = context
            if targets and not rel.to_many:
                relctx = dict(context, related_id=targets[0].id)
            links[rel.name] = self._link(descriptor, rel.link_template, relctx)

            # Bare identifiers have nothing to embed.
            docs = [
                self._document(target) for target in targets
                if kt.hypermedia.interfaces.IResourceDescriptor.providedBy(
                    target)
            ]
            if not docs:
                continue
            if rel.to_many:
                embedded[rel.name] = docs
            else:
                embedded[rel.name] = docs[0]

        doc = dict(_links=links)
        if embedded:
            doc['_embedded'] = embedded
        doc.update(descriptor.attributes)
        return doc
