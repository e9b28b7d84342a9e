"""\
Implementation of a simple link object.

"""

import zope.interface

import kt.hypermedia.interfaces


@zope.interface.implementer(kt.hypermedia.interfaces.ILink)
class Link:
    """Utility object representing a hypermedia link.

    This supports the optional properties allowed by HAL link objects
    in addition to the required href value, and a *meta* mapping used
    only for JSON:API.

    """

    def __init__(self, href, templated=False, name=None, title=None,
                 type=None, profile=None, deprecation=None, hreflang=None,
                 meta=None):
        """Initialize link with href and optional metadata.

        :param href:
            URL reference of the link target.
        :param templated:
            Indicates whether *href* is an :rfc:`6570` URI template.
        :param name:
            Secondary key for selecting among links sharing a relation.
        :param title:
            Human-facing title for the link, possibly suitable as a menu
            entry.  This is not necessarily the title of the linked
            document.
        :param type:
            Media type of the document referenced by *href*.
        :param profile:
            URI of a profile describing the target resource.
        :param deprecation:
            URL providing information about the deprecation of the link.
        :param hreflang:
            String or sequence of strings specifying languages the
            target document is available in.  Each entry must conform to
            :rfc:`5646`.
        :param meta:
            Mapping providing non-standard fields of additional data
            that should be serialized as the ``meta`` member of a
            JSON:API link.

        """
        self.href = href
        self.templated = templated
        self.name = name
        self.title = title
        self.type = type
        self.profile = profile
        self.deprecation = deprecation
        self._hreflang = hreflang
        self._meta = meta or {}

    @property
    def hreflang(self):
        hreflang = self._hreflang
        if hreflang is None or isinstance(hreflang, str):
            return hreflang
        else:
            return list(hreflang)

    def meta(self):
        """Return metadata for this link.

        This returns a dictionary with the content passed to the
        constructor as *meta*, if any.  Otherwise, returns an empty
        dictionary.

        """
        return dict(self._meta)

    def __repr__(self):
        return f'{self.__class__.__name__}({self.href!r})'
