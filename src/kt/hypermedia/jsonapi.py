"""\
JSON:API document builder.

Relationship data is always rendered using resource identifier objects.
Complete descriptors found in relationship data are rendered as resource
objects in the top-level ``included`` member, at most once each, no
matter how many relationships refer to them.

A relationship whose data is ``None`` is rendered with ``"data": null``;
an empty to-many relationship is rendered with ``"data": []``.  These
are distinct: the first signals that the related resources were not
resolved, the second that there are none.

"""

import zope.interface

import kt.hypermedia.interfaces
import kt.hypermedia.registry
import kt.hypermedia.serializers


class _Inclusion:
    """Track resources included in a single document."""

    def __init__(self, primary):
        self.idents = set((res.type, res.id) for res in primary)
        self.included = []

    def include(self, builder, resource):
        key = resource.type, resource.id
        if key not in self.idents:
            self.idents.add(key)
            # Reserve the position before rendering, so nested resources
            # follow the resource embedding them.
            index = len(self.included)
            self.included.append(None)
            self.included[index] = builder._resource(resource, self)


@zope.interface.implementer(kt.hypermedia.interfaces.IDocumentBuilder)
class JSONAPIBuilder:
    """Build JSON:API documents from resource descriptors."""

    format = kt.hypermedia.interfaces.JSONAPI
    content_type = kt.hypermedia.interfaces.JSONAPI_CONTENT_TYPE

    def __init__(self, registry=None, self_link=False):
        """Initialize builder.

        :param registry:
            Link registry used to generate all links.  If omitted, the
            :class:`~kt.hypermedia.interfaces.ILinkRegistry` utility is
            used.
        :param self_link:
            Indicates whether a top-level ``links`` member containing a
            ``self`` link for the primary resource should be generated.

        """
        if registry is None:
            registry = kt.hypermedia.registry.get_registry()
        self.registry = kt.hypermedia.interfaces.ILinkRegistry(registry)
        self.self_link = self_link

    def build(self, descriptor):
        descriptor = kt.hypermedia.interfaces.IResourceDescriptor(descriptor)
        descriptor.validate()
        inclusion = _Inclusion([descriptor])
        doc = dict(data=self._resource(descriptor, inclusion))
        if self.self_link:
            context = kt.hypermedia.registry.context_for(
                descriptor, format=self.format)
            doc['links'] = dict(self=self._link(descriptor, 'self', context))
        if inclusion.included:
            doc['included'] = inclusion.included
        return doc

    def build_collection(self, descriptors, href):
        descriptors = [kt.hypermedia.interfaces.IResourceDescriptor(ob)
                       for ob in descriptors]
        for descriptor in descriptors:
            descriptor.validate()
        inclusion = _Inclusion(descriptors)
        data = [self._resource(descriptor, inclusion)
                for descriptor in descriptors]
        doc = dict(data=data, links=dict(self=href))
        if inclusion.included:
            doc['included'] = inclusion.included
        return doc

    def _link(self, descriptor, relation, context):
        return kt.hypermedia.serializers.jsonapi_link(
            self.registry.link(descriptor.type, relation, context))

    def _relationship(self, descriptor, rel, context, inclusion):
        targets = rel.targets()
        if targets and not rel.to_many:
            context = dict(context, related_id=targets[0].id)
        r = dict(
            links=dict(
                related=self._link(descriptor, rel.link_template, context),
            ),
        )
        if not rel.resolved():
            r['data'] = None
        elif rel.to_many:
            r['data'] = [kt.hypermedia.serializers.identifier(target)
                         for target in targets]
        else:
            r['data'] = kt.hypermedia.serializers.identifier(targets[0])

        for target in targets:
            if kt.hypermedia.interfaces.IResourceDescriptor.providedBy(target):
                inclusion.include(self, target)
        return r

    def _resource(self, descriptor, inclusion):
        context = kt.hypermedia.registry.context_for(
            descriptor, format=self.format)
        r = dict(
            type=descriptor.type,
            id=descriptor.id,
            attributes=dict(descriptor.attributes),
        )
        rels = {}
        for rel in descriptor.relationships:
            rels[rel.name] = self._relationship(
                descriptor, rel, context, inclusion)
        if rels:
            r['relationships'] = rels
        return r
