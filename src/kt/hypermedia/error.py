"""\
Error objects for hypermedia error documents, and adapters from the
exceptions raised while building documents.

Error documents always use the JSON:API ``errors`` structure, whichever
format was negotiated for successful responses.

"""

import typing

import zope.component
import zope.interface
import zope.interface.common.sequence

import kt.hypermedia.interfaces


@zope.interface.implementer(kt.hypermedia.interfaces.IError)
class Error:
    """One entry of an error document.

    *pointer*, *parameter* and *header* identify what part of the
    request caused the problem, and end up in the ``source`` member.
    *meta* holds any additional, application-defined fields.

    """

    def __init__(self,
                 id: typing.Optional[str] = None,
                 status: typing.Optional[int] = None,
                 code: typing.Optional[str] = None,
                 title: typing.Optional[str] = None,
                 detail: typing.Optional[str] = None,
                 pointer: typing.Optional[str] = None,
                 parameter: typing.Optional[str] = None,
                 header: typing.Optional[str] = None,
                 meta: typing.Optional[dict] = None):
        self.id = id
        self.status = status
        self.code = code
        self.title = title
        self.detail = detail
        self._source = dict(pointer=pointer, parameter=parameter,
                            header=header)
        self._meta = dict(meta or ())

    def meta(self):
        return dict(self._meta)

    def source(self):
        return {name: value for name, value in self._source.items()
                if value}


def _title(exc):
    return (exc.__doc__ or '').strip() or None


@zope.component.adapter(kt.hypermedia.interfaces.IUnknownRelationException)
@zope.interface.implementer(kt.hypermedia.interfaces.IError)
def unknownRelationError(exc):
    """Report a relation with no registered link template.

    This is a server-side configuration problem, so the status is 500.

    """
    return Error(
        status=500,
        code='unknown-relation',
        title=_title(exc),
        detail=str(exc),
        meta=dict(type=exc.type, relation=exc.relation),
    )


@zope.component.adapter(kt.hypermedia.interfaces.IMalformedDescriptorException)
@zope.interface.implementer(kt.hypermedia.interfaces.IError)
def malformedDescriptorError(exc):
    """Report a descriptor that failed structural validation."""
    meta = {}
    descriptor = exc.descriptor
    if descriptor is not None:
        meta.update(type=descriptor.type, id=descriptor.id)
    return Error(
        status=500,
        code='malformed-descriptor',
        title=_title(exc),
        detail=str(exc),
        meta=meta,
    )


adapters = (
    unknownRelationError,
    malformedDescriptorError,
)


@zope.interface.implementer(kt.hypermedia.interfaces.IErrors,
                            zope.interface.common.sequence.IFiniteSequence)
class Errors:
    """Non-empty sequence of errors reported together."""

    def __init__(self, errors):
        errors = tuple(errors)
        if not errors:
            raise ValueError('sequence of errors cannot be empty')
        self._errors = errors

    def __getitem__(self, index: int):
        return self._errors[index]

    def __iter__(self):
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)
