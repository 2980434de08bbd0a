"""
Resolution of public URLs to document nodes by matching uriPathSegment.
"""

import logging

from .content_repository import AmbiguousNodeError, NodeNotFoundError

logger = logging.getLogger(__name__)

URI_PATH_SEGMENT = "uriPathSegment"


class UrlResolver:
    def __init__(self, provider):
        self.provider = provider

    def resolve(self, document, url):
        """
        Walk down from ``document`` following the segments of ``url``.

        Empty segments are skipped, so "", "/" and "/news/" are all valid.

        Returns:
            Node: the document matching the last segment, or ``document``
                itself for an empty URL

        Raises:
            NodeNotFoundError: no child document matches a segment
            AmbiguousNodeError: several child documents match a segment
        """
        for segment in url.split("/"):
            if not segment:
                continue
            document = self.child_for_segment(document, segment)
        return document

    def child_for_segment(self, document, segment):
        found = [
            child
            for child in self.provider.get_child_documents(document)
            if self.provider.get_property(child, URI_PATH_SEGMENT) == segment
        ]
        path = self.provider.get_path(document)

        if not found:
            raise NodeNotFoundError(
                f'Could not find any child document for URL path segment: "{segment}" on "{path}"',
                segment=segment,
                path=path,
            )
        if len(found) > 1:
            raise AmbiguousNodeError(
                f'URL path segment "{segment}" on "{path}" matches {len(found)} documents: '
                + ", ".join(self.provider.get_path(node) for node in found)
            )

        logger.debug("URL segment %s resolved to %s", segment, found[0])
        return found[0]
