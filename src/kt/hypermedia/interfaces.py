"""\
Interfaces for hypermedia representations of application objects.

"""

import re
import typing

import zope.interface
import zope.interface.common.interfaces
import zope.interface.common.mapping
import zope.interface.common.sequence
import zope.schema
import zope.schema.interfaces
import zope.schema.vocabulary


_re_gac = r'[a-zA-Z0-9\u0080-\uffff]'
_re_memch = r'[-a-zA-Z0-9\u0080-\uffff_ ]'

_re_member_name = f'{_re_gac}({_re_memch}*{_re_gac})?$'
_rx_member_name = re.compile(_re_member_name.replace(' ', ''))


TO_ONE = 'to-one'
"""Cardinality of a relationship referring to at most one resource."""

TO_MANY = 'to-many'
"""Cardinality of a relationship referring to a collection of resources."""

HAL = 'hal'
JSONAPI = 'jsonapi'

HAL_CONTENT_TYPE = 'application/hal+json'
"""Media type associated with HAL payloads."""

JSONAPI_CONTENT_TYPE = 'application/vnd.api+json'
"""Media type associated with JSON:API payloads."""


# --------------------
# Exception interfaces


class IInvalidNameException(zope.interface.common.interfaces.IException):
    """Interface for the Invalid* exceptions."""

    field = zope.schema.Object(
        description='Field which failed validation',
        schema=zope.schema.interfaces.IField,
        required=True,
    )

    value = zope.interface.Attribute("Value determined to be invalid")


class IUnknownRelationException(zope.interface.common.interfaces.ILookupError):
    """Interface for UnknownRelationError instances."""

    type = zope.schema.TextLine(
        description='Resource type for which a link was requested',
        required=True,
    )

    relation = zope.schema.TextLine(
        description='Relation name for which a link was requested',
        required=True,
    )


class IMalformedDescriptorException(
        zope.interface.common.interfaces.IValueError):
    """Interface for MalformedDescriptorError instances."""

    reason = zope.schema.Text(
        description='Human-facing description of the violated constraint',
        required=True,
    )

    descriptor = zope.interface.Attribute(
        'Descriptor which failed validation, if known.')


class ITraversalException(zope.interface.common.interfaces.IException):
    """Interface for exceptions recorded during discovery."""

    url = zope.schema.TextLine(
        description='URL being processed when the problem occurred',
        required=True,
    )


# ----------
# Exceptions


@zope.interface.implementer(IInvalidNameException)
class _InvalidName(zope.schema.interfaces.ValidationError):
    """Name is invalid according to JSON:API."""


class InvalidMemberName(_InvalidName):
    """Member name is invalid according to JSON:API."""


class InvalidTypeName(_InvalidName):
    """Type name is invalid according to JSON:API."""


@zope.interface.implementer(IUnknownRelationException)
class UnknownRelationError(LookupError):
    """No link template is registered for a resource type and relation."""

    def __init__(self, type, relation):
        super(UnknownRelationError, self).__init__(type, relation)
        self.type = type
        self.relation = relation

    def __str__(self):
        return (f'no link template registered for relation'
                f' {self.relation!r} of type {self.type!r}')


@zope.interface.implementer(IMalformedDescriptorException)
class MalformedDescriptorError(ValueError):
    """Resource descriptor violates a structural constraint."""

    def __init__(self, reason, descriptor=None):
        super(MalformedDescriptorError, self).__init__(reason)
        self.reason = reason
        self.descriptor = descriptor

    def __str__(self):
        return f'malformed resource descriptor: {self.reason}'


@zope.interface.implementer(ITraversalException)
class UnrecognizedFormatError(ValueError):
    """Fetched document is neither HAL nor JSON:API."""

    def __init__(self, url, content_type=None):
        super(UnrecognizedFormatError, self).__init__(url, content_type)
        self.url = url
        self.content_type = content_type

    def __str__(self):
        return (f'document at {self.url} is not a recognized hypermedia'
                f' format (content type {self.content_type!r})')


@zope.interface.implementer(ITraversalException)
class FetchFailure(Exception):
    """Retrieving a document failed."""

    def __init__(self, url, reason=None):
        super(FetchFailure, self).__init__(url, reason)
        self.url = url
        self.reason = reason

    def __str__(self):
        if self.reason:
            return f'could not fetch {self.url}: {self.reason}'
        return f'could not fetch {self.url}'


# -----------------
# Field definitions


class _Name(zope.schema.TextLine):

    def __init__(self, *args, **kwargs):
        # The constructor for zope.interface.Element uses __name__ for
        # __doc__, and sets __name__ to None, if there's a space in
        # __name__.  Since our field names are generated based on user
        # input, this is wrong behavior for us, so work around it.
        name = kwargs.pop('__name__', None)
        kwargs['__name__'] = 'xxx'
        super(_Name, self).__init__(*args, **kwargs)
        self.__name__ = name

    def constraint(self, value):
        if _rx_member_name.match(value) is None:
            raise self._exception().with_field_and_value(self, value)
        else:
            return True


class MemberName(_Name):
    """Member name, as defined by JSON:API.

    Allowed member names are `constrained by the specification
    <https://jsonapi.org/format/#document-member-names>`__.
    This definition applies to the names of attributes and relationships.
    HAL relation names are held to the same rules so a descriptor
    renders the same way in either format.

    Raises :exc:`InvalidMemberName` when constraints are not satisfied.

    """

    _exception = InvalidMemberName


class TypeName(_Name):
    """Type name, as defined by JSON:API.

    Raises :exc:`InvalidTypeName` when constraints are not satisfied.

    """

    _exception = InvalidTypeName


class URL(zope.schema.TextLine):

    def __init__(self, title=None, description=None, min_length=None,
                 **kwargs):
        kwargs.update(
            title=(title or 'URL'),
            description=(description or 'Absolute or relative URL'),
            min_length=(min_length or 1),
        )
        super(URL, self).__init__(**kwargs)


cardinalities = zope.schema.vocabulary.SimpleVocabulary.fromValues(
    [TO_ONE, TO_MANY])


# ---------------------------------------------
# Interfaces used when everything is going well


class IFieldMapping(zope.interface.common.mapping.IEnumerableMapping):
    """Mapping from field names to JSON-encodable values."""


class ILink(zope.interface.Interface):

    href = URL(required=True)

    templated = zope.schema.Bool(
        description='Indicates *href* is an :rfc:`6570` URI template.',
        required=False,
        default=False,
    )

    name = zope.schema.TextLine(
        description='Secondary key for selecting among links of a relation.',
        required=False,
        missing_value=None,
    )

    title = zope.schema.TextLine(
        description='''
            Human-facing title for the link, possibly suitable as a
            menu entry.  This is not necessarily the title of the
            linked document.
        ''',
        min_length=1,
        required=False,
        missing_value=None,
    )

    type = zope.schema.ASCIILine(
        description='Media type of the document referenced by *href*.',
        min_length=3,
        required=False,
        missing_value=None,
    )

    profile = URL(
        description='URI of a profile describing the target resource.',
        required=False,
        missing_value=None,
    )

    deprecation = URL(
        description='URL describing the deprecation of the link.',
        required=False,
        missing_value=None,
    )

    hreflang = zope.interface.Attribute('hreflang', '''
        String or sequence of strings specifying languages the target
        document is available in.  Each entry must conform to
        :rfc:`5646`.  May be `None`.
    ''')

    def meta() -> IFieldMapping:
        """Retrieve a mapping containing non-standard, named metadata fields.

        The mapping may be empty.  Only JSON:API serialization makes use
        of this.

        """


class IResourceIdentifier(zope.interface.Interface):

    id = zope.schema.Text(
        title='Identifier',
        description=('Identifier to distinguish resource from'
                     ' others of the same type'),
        min_length=1,
        required=True,
        readonly=True,
    )

    type = TypeName(
        title='Type',
        description='Resource type identifier',
        required=True,
        readonly=True,
    )


class IRelationshipDescriptor(zope.interface.Interface):

    name = MemberName(
        title='Name',
        description='Field name of the relationship.',
        required=True,
        readonly=True,
    )

    cardinality = zope.schema.Choice(
        title='Cardinality',
        vocabulary=cardinalities,
        required=True,
        readonly=True,
    )

    link_template = zope.schema.TextLine(
        title='Link template',
        description='''
            Relation key used to look up the related link in the link
            registry.  Usually the same as *name*.
        ''',
        min_length=1,
        required=True,
        readonly=True,
    )

    data = zope.interface.Attribute('data', '''
        ``None`` if the related resources are not resolved.  For to-one
        relationships, a single resource identifier or descriptor; an
        empty to-one relationship is also ``None``.  For to-many
        relationships, a sequence of resource identifiers or
        descriptors, possibly empty.
    ''')

    def resolved() -> bool:
        """Return true if related resources were provided."""

    def targets() -> typing.Sequence[IResourceIdentifier]:
        """Return the related resources as a sequence.

        The sequence is empty if the relationship is not resolved.

        """


class IResourceDescriptor(IResourceIdentifier):
    """Format-agnostic representation of a resource."""

    attributes = zope.schema.Dict(
        title='Attributes',
        key_type=MemberName(),
        required=True,
        readonly=True,
    )

    relationships = zope.schema.Tuple(
        title='Relationships',
        value_type=zope.schema.Object(schema=IRelationshipDescriptor),
        required=True,
        readonly=True,
    )

    def validate():
        """Check structural constraints, recursing into embedded data.

        Raises :exc:`MalformedDescriptorError` on the first problem
        found.

        """


class ILinkRegistry(zope.interface.Interface):

    def resolve(type, relation, context=None) -> str:
        """Return the URL for *relation* of a resource of *type*.

        *context* is a mapping used to expand the template.  Raises
        :exc:`UnknownRelationError` if no template is registered.

        """

    def link(type, relation, context=None) -> ILink:
        """Return a link object for *relation* of a resource of *type*.

        Raises :exc:`UnknownRelationError` if no template is registered.

        """

    def identify(href) -> typing.Optional[typing.Tuple[str, str]]:
        """Return the ``(type, id)`` whose ``self`` link matches *href*.

        Returns ``None`` if no ``self`` template matches.

        """


class IDocumentBuilder(zope.interface.Interface):

    format = zope.schema.ASCIILine(
        title='Format',
        description='Short name of the hypermedia format produced',
        required=True,
        readonly=True,
    )

    content_type = zope.schema.ASCIILine(
        title='Content type',
        description='Media type of documents produced',
        required=True,
        readonly=True,
    )

    registry = zope.schema.Object(
        title='Link registry',
        schema=ILinkRegistry,
        required=True,
        readonly=True,
    )

    def build(descriptor) -> dict:
        """Return a document representing *descriptor*.

        No document is produced if *descriptor* is malformed or refers
        to a relation without a registered link template.

        """

    def build_collection(descriptors, href) -> dict:
        """Return a document representing a collection of resources.

        *href* is the URL of the collection itself.

        """


class IError(zope.interface.Interface):
    """Presentation of a single error.

    See `Error Objects <https://jsonapi.org/format/#error-objects>`__
    for discussion on the specific information that each field
    represents.

    """

    id = zope.schema.Text(
        title='Identifier',
        description='Identifier for this particular instance of a problem',
        required=False,
        missing_value=None,
    )

    status = zope.schema.Int(
        title='Status code',
        description='HTTP status code',
        min=400,
        max=599,
        required=False,
        missing_value=None,
    )

    code = zope.schema.TextLine(
        title='Code',
        description='Error code identifying the specific application error',
        required=False,
        missing_value=None,
    )

    title = zope.schema.TextLine(
        title='Title',
        description='Human-facing title describing the application error',
        required=False,
        missing_value=None,
    )

    detail = zope.schema.Text(
        title='Detailed description',
        description='Human-facing description of this instance of the problem',
        required=False,
        missing_value=None,
    )

    def meta() -> IFieldMapping:
        """Retrieve a mapping containing non-standard, named metadata fields.

        The mapping may be empty.

        """

    def source() -> IFieldMapping:
        """Returns mapping containing references to the source of the error.

        The mapping may be empty.

        """


class IErrors(zope.interface.common.sequence.IMinimalSequence):
    """Interface representing a collection of `IError` instances.

    When generating an error response from an exception, the exception
    will be adapted to this interface if possible.  On success, each
    entry in the ``errors`` property in the generated response will
    correspond to an entry in this sequence.

    This sequence cannot be empty.

    """
