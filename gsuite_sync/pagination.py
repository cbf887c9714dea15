"""
Paginated retrieval of provider list endpoints.

A PageStreamer follows continuation tokens until the provider stops issuing
them, yielding items lazily one page at a time.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class ListRequest:
    """
    Descriptor for a single list call.
    
    Wraps a googleapiclient list method (e.g. ``service.users().list``) and the
    keyword parameters it is called with.
    """
    
    def __init__(self, method: Callable[..., Any], **params):
        self.method = method
        self.params = params
    
    def with_page_token(self, token: str) -> 'ListRequest':
        """Return a copy of this request asking for the page behind token."""
        params = dict(self.params)
        params['pageToken'] = token
        return ListRequest(self.method, **params)
    
    def execute(self) -> Dict[str, Any]:
        return self.method(**self.params).execute()
    
    def __repr__(self):
        return f"ListRequest({getattr(self.method, '__qualname__', self.method)!r}, {self.params!r})"


class PageStreamer:
    """
    Generic page follower parameterized by three behaviours.
    
    Args:
        set_token: Builds the next request from the current one and a token
        get_token: Extracts the continuation token from a response
        get_items: Extracts the page's items from a response
    """
    
    def __init__(self,
                 set_token: Callable[[Any, str], Any],
                 get_token: Callable[[Any], Optional[str]],
                 get_items: Callable[[Any], Optional[List[Any]]]):
        self.set_token = set_token
        self.get_token = get_token
        self.get_items = get_items
    
    @classmethod
    def for_collection(cls, items_key: str) -> 'PageStreamer':
        """
        Create a streamer for the Directory API list convention.
        
        Args:
            items_key: Response field holding the page items ('users', 'groups', 'members')
        """
        return cls(
            lambda request, token: request.with_page_token(token),
            lambda response: response.get('nextPageToken'),
            lambda response: response.get(items_key)
        )
    
    def fetch(self, request) -> Iterator[Any]:
        """
        Yield every item across all pages of request.
        
        Pages are requested only as the caller consumes items. Provider errors
        propagate unchanged.
        """
        page_count = 0
        while True:
            response = request.execute()
            page_count += 1
            
            items = self.get_items(response) or []
            logger.debug(f"Page {page_count}: Retrieved {len(items)} items")
            for item in items:
                yield item
            
            token = self.get_token(response)
            if not token:
                break
            request = self.set_token(request, token)
