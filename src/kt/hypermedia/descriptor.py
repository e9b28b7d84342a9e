"""\
Format-agnostic descriptions of resources and their relationships.

Descriptors are the contract between the application and the document
builders.  The application resolves whatever related resources should
be embedded before constructing descriptors; builders never fetch
anything, and render exactly the depth of embedding they are given.

Related resources in relationship data can be either bare
:class:`ResourceIdentifier` references or complete
:class:`ResourceDescriptor` objects.  Only complete descriptors are
embedded (HAL) or included (JSON:API).

"""

import typing

import zope.interface
import zope.schema

import kt.hypermedia.interfaces


_reserved_attributes = frozenset(['id', 'type'])


@zope.interface.implementer(kt.hypermedia.interfaces.IResourceIdentifier)
class ResourceIdentifier:
    """Reference to a resource by type and identifier only."""

    __slots__ = 'type', 'id'

    def __init__(self, type: str, id):
        self.type = type
        self.id = str(id)

    def __eq__(self, other):
        if not kt.hypermedia.interfaces.IResourceIdentifier.providedBy(other):
            return NotImplemented
        return (self.type, self.id) == (other.type, other.id)

    def __hash__(self):
        return hash((self.type, self.id))

    def __repr__(self):
        return f'{self.__class__.__name__}({self.type!r}, {self.id!r})'


@zope.interface.implementer(kt.hypermedia.interfaces.IRelationshipDescriptor)
class RelationshipDescriptor:
    """Description of a named relationship of a resource."""

    def __init__(self,
                 name: str,
                 cardinality: str,
                 data=None,
                 link_template: typing.Optional[str] = None):
        """Initialize relationship descriptor.

        :param name:  Field name of the relationship.
        :param cardinality:
            Either :data:`~kt.hypermedia.interfaces.TO_ONE` or
            :data:`~kt.hypermedia.interfaces.TO_MANY`.
        :param data:
            Related resources, if resolved.  ``None`` signals that the
            relationship was not resolved; for to-many relationships an
            empty sequence signals a resolved, empty collection.
        :param link_template:
            Relation key used to look up links in the link registry.
            Defaults to *name*.

        Sequences passed as *data* are copied, so later changes to the
        caller's sequence are not reflected.

        """
        self.name = name
        self.cardinality = cardinality
        if isinstance(data, list):
            data = tuple(data)
        self.data = data
        self.link_template = link_template or name

    @property
    def to_many(self):
        return self.cardinality == kt.hypermedia.interfaces.TO_MANY

    def resolved(self):
        return self.data is not None

    def targets(self):
        if self.data is None:
            return ()
        if self.to_many:
            return tuple(_related(ob) for ob in self.data)
        return (_related(self.data),)

    def __repr__(self):
        return (f'{self.__class__.__name__}({self.name!r},'
                f' {self.cardinality!r})')


@zope.interface.implementer(kt.hypermedia.interfaces.IResourceDescriptor)
class ResourceDescriptor:
    """Description of a resource, with relationships in declared order."""

    def __init__(self,
                 type: str,
                 id,
                 attributes: typing.Optional[dict] = None,
                 relationships: typing.Sequence[RelationshipDescriptor] = ()):
        self.type = type
        self.id = str(id)
        self.attributes = dict(attributes or {})
        self.relationships = tuple(relationships)

    def relationship(self, name):
        """Return the relationship named *name*, or ``None``."""
        for rel in self.relationships:
            if rel.name == name:
                return rel
        return None

    def validate(self):
        _validate(self, ())

    def __repr__(self):
        return f'{self.__class__.__name__}({self.type!r}, {self.id!r})'


def _related(ob):
    # Complete descriptors are preferred; application objects may be
    # adapted to either.
    iface = kt.hypermedia.interfaces.IResourceIdentifier
    if iface.providedBy(ob):
        return ob
    res = kt.hypermedia.interfaces.IResourceDescriptor(ob, None)
    if res is None:
        res = iface(ob, None)
    if res is None:
        raise kt.hypermedia.interfaces.MalformedDescriptorError(
            f'related value {ob!r} is not a resource identifier'
            f' or descriptor')
    return res


def _is_sequence(ob):
    return (isinstance(ob, (list, tuple))
            and not kt.hypermedia.interfaces.IResourceIdentifier.providedBy(
                ob))


def _check_attribute_value(descriptor, name, value):
    values = value if isinstance(value, (list, tuple)) else (value,)
    for val in values:
        if kt.hypermedia.interfaces.IResourceIdentifier.providedBy(val):
            raise kt.hypermedia.interfaces.MalformedDescriptorError(
                f'attribute {name!r} of {descriptor.type}/{descriptor.id}'
                f' holds a resource; use a relationship instead',
                descriptor)


def _validate(descriptor, ancestors):
    Malformed = kt.hypermedia.interfaces.MalformedDescriptorError

    key = id(descriptor)
    if key in ancestors:
        raise Malformed(
            f'embedding cycle through {descriptor.type}/{descriptor.id}',
            descriptor)
    ancestors = ancestors + (key,)

    errors = zope.schema.getValidationErrors(
        kt.hypermedia.interfaces.IResourceDescriptor, descriptor)
    if errors:
        name, exc = errors[0]
        raise Malformed(f'invalid {name!r}: {exc!r}', descriptor)

    names = set()
    for rel in descriptor.relationships:
        if rel.name in names:
            raise Malformed(f'duplicate relationship {rel.name!r}',
                            descriptor)
        names.add(rel.name)

    for name, value in descriptor.attributes.items():
        if name in _reserved_attributes or name in names:
            raise Malformed(f'attribute name {name!r} is reserved',
                            descriptor)
        _check_attribute_value(descriptor, name, value)

    for rel in descriptor.relationships:
        if rel.data is None:
            continue
        if rel.to_many and not _is_sequence(rel.data):
            raise Malformed(
                f'to-many relationship {rel.name!r} requires a sequence',
                descriptor)
        if not rel.to_many and _is_sequence(rel.data):
            raise Malformed(
                f'to-one relationship {rel.name!r} cannot hold a sequence',
                descriptor)
        for target in rel.targets():
            errors = zope.schema.getValidationErrors(
                kt.hypermedia.interfaces.IResourceIdentifier, target)
            if errors:
                name, exc = errors[0]
                raise Malformed(
                    f'relationship {rel.name!r} refers to a resource with'
                    f' invalid {name!r}: {exc!r}',
                    descriptor)
            if kt.hypermedia.interfaces.IResourceDescriptor.providedBy(
                    target):
                _validate(target, ancestors)
