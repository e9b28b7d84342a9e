"""\
Serialization of link and error objects.

The serialization functions accept objects that are adaptable to the
interfaces defined in ``kt.hypermedia.interfaces`` and convert to simple
JSON-friendly Python structures.

These are not public API.

"""

import kt.hypermedia.interfaces


def hal_link(lynk):
    ob = kt.hypermedia.interfaces.ILink(lynk)
    d = dict(href=ob.href)
    if ob.templated:
        d['templated'] = True
    if ob.type is not None:
        d['type'] = ob.type
    if ob.deprecation:
        d['deprecation'] = ob.deprecation
    if ob.name:
        d['name'] = ob.name
    if ob.profile:
        d['profile'] = ob.profile
    if ob.title:
        d['title'] = ob.title
    hreflang = ob.hreflang
    if hreflang:
        d['hreflang'] = hreflang
    return d


def jsonapi_link(lynk):
    ob = kt.hypermedia.interfaces.ILink(lynk)
    d = dict(href=ob.href)
    if ob.title:
        d['title'] = ob.title
    if ob.type is not None:
        d['type'] = ob.type
    hreflang = ob.hreflang
    if hreflang:
        d['hreflang'] = hreflang
    meta = dict(ob.meta())
    if meta:
        d['meta'] = meta
    if len(d) == 1:
        return ob.href
    else:
        return d


def identifier(resource):
    return dict(type=resource.type, id=resource.id)


def error(error):
    r = dict()
    if error.id is not None:
        r['id'] = error.id
    if error.status is not None:
        r['status'] = str(error.status)
    if error.code is not None:
        r['code'] = error.code
    if error.title is not None:
        r['title'] = error.title
    if error.detail is not None:
        r['detail'] = error.detail
    meta = error.meta()
    if meta:
        r['meta'] = meta
    src = error.source()
    if src:
        r['source'] = src
    if not r:
        # https://github.com/json-api/json-api/issues/1496
        raise ValueError('serialization generated an empty error object')
    return r
