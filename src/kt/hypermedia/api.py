"""\
Top-level API to construct hypermedia responses from application objects.

The response format is negotiated using the **Accept** header of the
request.  Both HAL and JSON:API are served as JSON, so a request
accepting only ``application/json`` (or not specifying anything) is
answered using the configured default format.

Configuration is read from the Flask application config:

``KT_HYPERMEDIA_LINKS``
    Link registry, or a nested mapping accepted by
    :meth:`kt.hypermedia.registry.LinkRegistry.from_config`.

``KT_HYPERMEDIA_DEFAULT_FORMAT``
    Either ``'hal'`` or ``'jsonapi'`` (the default).

``KT_HYPERMEDIA_CONTEXT_REGULAR``, ``KT_HYPERMEDIA_CONTEXT_ERROR``
    Factories for request contexts; see :func:`context` and
    :func:`error_context`.

"""

import functools
import logging

import flask
import werkzeug.datastructures
import werkzeug.exceptions
import zope.component

import kt.hypermedia.error
import kt.hypermedia.hal
import kt.hypermedia.interfaces
import kt.hypermedia.jsonapi
import kt.hypermedia.registry
import kt.hypermedia.serializers


logger = logging.getLogger(__name__)

EXTENSION_NAME = 'kt.hypermedia'

_content_types = {
    kt.hypermedia.interfaces.HAL: kt.hypermedia.interfaces.HAL_CONTENT_TYPE,
    kt.hypermedia.interfaces.JSONAPI:
        kt.hypermedia.interfaces.JSONAPI_CONTENT_TYPE,
}


def init_app(app):
    """Prepare *app* for generating hypermedia responses.

    The link registry is constructed from the application configuration
    and stored in ``app.extensions``.  Adapters from the exceptions
    raised by document builders to error objects are registered with
    the global component registry.

    Returns the link registry.

    """
    config = app.config
    config.setdefault('KT_HYPERMEDIA_LINKS', {})
    config.setdefault('KT_HYPERMEDIA_DEFAULT_FORMAT',
                      kt.hypermedia.interfaces.JSONAPI)

    fmt = config['KT_HYPERMEDIA_DEFAULT_FORMAT']
    if fmt not in _content_types:
        raise ValueError(f'unknown hypermedia format for'
                         f' KT_HYPERMEDIA_DEFAULT_FORMAT: {fmt!r}')

    registry = config['KT_HYPERMEDIA_LINKS']
    if not kt.hypermedia.interfaces.ILinkRegistry.providedBy(registry):
        registry = kt.hypermedia.registry.LinkRegistry.from_config(registry)
    app.extensions[EXTENSION_NAME] = registry

    for adapter in kt.hypermedia.error.adapters:
        zope.component.provideAdapter(adapter)

    logger.debug('configured %d link templates for %s; default format %s',
                 len(registry), app.name, fmt)
    return registry


def _registry(app):
    try:
        return app.extensions[EXTENSION_NAME]
    except KeyError:
        raise RuntimeError(
            f'init_app() has not been called for {app.name}') from None


class _BaseContext:

    def __init__(self, app, request):
        """Initialize information needed from the request.

        All information is captured from the request up front, instead
        of relying on being able to get it later.

        """
        self._dumps = app.json.dumps

    def error(self, error, headers=None):
        """Generate error response from exception.

        The response is a JSON:API error document, whichever format
        was negotiated for successful responses.

        If *headers* is given and non-``None``, it must be be mapping of
        additional headers that should be returned in the request.  If a
        **Content-Type** header is provided, it will be used instead of
        the default value for JSON:API responses.

        """
        seq = kt.hypermedia.interfaces.IErrors(error, None)
        if seq is None:
            ierr = kt.hypermedia.interfaces.IError(error)
            seq = (ierr,)
        else:
            seq = tuple(kt.hypermedia.interfaces.IError(error)
                        for error in seq)
        body = dict(errors=[kt.hypermedia.serializers.error(err)
                            for err in seq])
        statuses = set(err.status for err in seq if err.status)
        if len(statuses) == 1:
            # All the same, just use it:
            status = statuses.pop()
        elif not statuses:
            # Nothing specified, so the situation is bad:
            status = 500
        else:
            statuses = sorted(statuses)
            if statuses[-1] >= 500:
                status = 500
            else:
                status = 400
        if status >= 500:
            logger.error('hypermedia error response (%d): %s', status, error)
        return self._response(
            body, kt.hypermedia.interfaces.JSONAPI_CONTENT_TYPE,
            headers=headers, status=status)

    def _response(self, body, content_type, headers=None, status=200):
        data = self._dumps(body).encode('utf-8')
        hdrs = werkzeug.datastructures.Headers()
        if headers is not None:
            hdrs.extend(headers)
        if 'Content-Type' not in hdrs:
            hdrs['Content-Type'] = content_type
        return flask.make_response(data, status, hdrs)


class Context(_BaseContext):
    """Request context containing hypermedia-specific information.

    Sub-classes or alternatives may be constructed for request objects
    from different web frameworks; this is built for Flask requests.

    """

    builder_factories = {
        kt.hypermedia.interfaces.HAL: kt.hypermedia.hal.HALBuilder,
        kt.hypermedia.interfaces.JSONAPI: functools.partial(
            kt.hypermedia.jsonapi.JSONAPIBuilder, self_link=True),
    }

    def __init__(self, app, request):
        """Initialize information needed from the request.

        The response format is negotiated immediately; if the client
        accepts neither format, ``NotAcceptable`` is raised.

        """
        super(Context, self).__init__(app, request)
        self.registry = _registry(app)
        self.path = request.path
        self.format = self._negotiate(
            request.accept_mimetypes,
            app.config.get('KT_HYPERMEDIA_DEFAULT_FORMAT',
                           kt.hypermedia.interfaces.JSONAPI))
        self.builder = self.builder_factories[self.format](self.registry)

    def _negotiate(self, accept, default):
        offered = [_content_types[default]]
        offered += [ct for ct in _content_types.values()
                    if ct not in offered]
        best = accept.best_match(offered)
        if best is None:
            if accept and not accept.accept_json:
                raise werkzeug.exceptions.NotAcceptable(
                    'hypermedia responses are only available as '
                    + ' or '.join(offered))
            return default
        for fmt, ct in _content_types.items():
            if ct == best:
                return fmt

    @property
    def content_type(self):
        return self.builder.content_type

    def resource(self, resource, headers=None, status=200):
        """Generate response containing a resource as primary data.

        *resource* must be adaptable to
        :class:`~kt.hypermedia.interfaces.IResourceDescriptor`.

        Exceptions raised while building the document propagate; no
        response is generated.

        If *headers* is given and non-``None``, it must be be mapping of
        additional headers that should be returned in the request.  If a
        **Content-Type** header is provided, it will be used instead of
        the negotiated media type.

        """
        body = self.builder.build(resource)
        return self._response(body, self.content_type,
                              headers=headers, status=status)

    def collection(self, resources, href=None, headers=None):
        """Generate response containing a collection of resources.

        *href* is used as the ``self`` link of the collection; the path
        of the request is used if not provided.

        """
        body = self.builder.build_collection(resources, href or self.path)
        return self._response(body, self.content_type, headers=headers)

    def created(self, resource, headers=None, location=None):
        """Generate response for a newly created resource.

        The response will carry a 201 status code.  If *location* is not
        provided, the ``self`` link of the resource is used for the
        **Location** header.

        """
        resource = kt.hypermedia.interfaces.IResourceDescriptor(resource)
        if location is None:
            location = self.registry.resolve(
                resource.type, 'self',
                kt.hypermedia.registry.context_for(
                    resource, format=self.format))
        hdrs = werkzeug.datastructures.Headers()
        if headers is not None:
            hdrs.extend(headers)
        hdrs['Location'] = location
        return self.resource(resource, headers=hdrs, status=201)


class ErrorContext(_BaseContext):
    """Request context for error responses.

    This context is suitable for handling errors being returned to a
    client, but not for general response serialization.  No content
    negotiation is performed, allowing error responses to be provided
    even to clients that accept neither hypermedia format.

    """


def context():
    """Get hypermedia context for current Flask request.

    A new context will be created if needed.  At most one context will
    be associated with each request.

    If the ``'KT_HYPERMEDIA_CONTEXT_REGULAR'`` setting is specified in
    ``flask.current_app.config``, it should be a factory for a context
    object.  This will normally be derived from :class:`Context`.

    """
    return __get_context(factory=Context, factory_name='REGULAR')


def error_context():
    """Get hypermedia context for current Flask request, suitable for
    error serialization.

    A new context will be created if needed, but no content negotiation
    will be performed.  At most one context will be associated with
    each request.

    Only the :meth:`~kt.hypermedia.api.Context.error` method should be
    invoked on the returned context.

    If the ``'KT_HYPERMEDIA_CONTEXT_ERROR'`` setting is specified in
    ``flask.current_app.config``, it should be a factory for a context
    object.  This will normally be derived from :class:`ErrorContext`.

    """
    ctx = __get_context(factory=ErrorContext, factory_name='ERROR')
    if ctx.__class__ is Context:
        ctx.__class__ = ErrorContext
    return ctx


def __get_context(factory, factory_name):
    try:
        return flask.g.__hypermedia_context
    except AttributeError:
        # pass & fall through to avoid the confusing chained exception
        # when things go wrong building the context based on the
        # request.
        pass
    config = flask.current_app.config
    factory = config.get(f'KT_HYPERMEDIA_CONTEXT_{factory_name}', factory)
    ctx = factory(flask.current_app._get_current_object(),
                  flask.request._get_current_object())
    flask.g.__hypermedia_context = ctx
    return ctx
