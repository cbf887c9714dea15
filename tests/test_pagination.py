#!/usr/bin/env python3
"""
Unit tests for the paginated fetcher.

Covers token following, lazy page retrieval, termination on empty tokens and
error propagation.
"""

import os
import sys
import unittest

# Add the project directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from gsuite_sync.pagination import ListRequest, PageStreamer
from fake_directory import FakeDirectory, user


class TestListRequest(unittest.TestCase):
    """Test cases for the request descriptor."""

    def test_with_page_token_copies_params(self):
        """Attaching a token leaves the original request untouched."""
        directory = FakeDirectory()
        request = ListRequest(directory.users().list, domain='example.com')

        next_request = request.with_page_token('abc')

        self.assertEqual(request.params, {'domain': 'example.com'})
        self.assertEqual(next_request.params, {'domain': 'example.com', 'pageToken': 'abc'})
        self.assertIs(next_request.method, request.method)

    def test_execute_calls_method_with_params(self):
        """Executing builds the provider request and runs it."""
        directory = FakeDirectory(users=[user('1', 'a@example.com')])
        request = ListRequest(directory.users().list, customer='my_customer')

        response = request.execute()

        self.assertEqual(response['users'], [user('1', 'a@example.com')])
        self.assertEqual(directory.calls, [('users', {'customer': 'my_customer'})])


class TestPageStreamer(unittest.TestCase):
    """Test cases for PageStreamer."""

    def setUp(self):
        self.streamer = PageStreamer.for_collection('users')

    def make_users(self, count):
        return [user(str(i), f'user{i}@example.com') for i in range(count)]

    def test_all_items_for_any_page_size(self):
        """N items split across pages of size k come back exactly once, in order."""
        users = self.make_users(7)
        for page_size in range(1, 10):
            with self.subTest(page_size=page_size):
                directory = FakeDirectory(users=users, page_size=page_size)
                fetched = list(self.streamer.fetch(ListRequest(directory.users().list)))

                self.assertEqual([u['id'] for u in fetched], [u['id'] for u in users])
                expected_pages = max(1, -(-len(users) // page_size))
                self.assertEqual(len(directory.calls), expected_pages)

    def test_empty_collection(self):
        """A single empty page yields nothing and stops."""
        directory = FakeDirectory()
        fetched = list(self.streamer.fetch(ListRequest(directory.users().list)))

        self.assertEqual(fetched, [])
        self.assertEqual(len(directory.calls), 1)

    def test_token_forwarded_to_next_request(self):
        """Each follow-up request carries the previous page's token."""
        directory = FakeDirectory(users=self.make_users(5), page_size=2)
        list(self.streamer.fetch(ListRequest(directory.users().list, domain='example.com')))

        self.assertEqual(directory.calls, [
            ('users', {'domain': 'example.com'}),
            ('users', {'domain': 'example.com', 'pageToken': '2'}),
            ('users', {'domain': 'example.com', 'pageToken': '4'}),
        ])

    def test_pages_fetched_lazily(self):
        """Only the first page is requested until the caller reads past it."""
        directory = FakeDirectory(users=self.make_users(6), page_size=2)
        items = self.streamer.fetch(ListRequest(directory.users().list))

        self.assertEqual(directory.calls, [])
        next(items)
        next(items)
        self.assertEqual(len(directory.calls), 1)
        next(items)
        self.assertEqual(len(directory.calls), 2)

    def test_fetch_restarts_each_call(self):
        """Two fetches of the same request both start from the first page."""
        directory = FakeDirectory(users=self.make_users(3), page_size=2)
        request = ListRequest(directory.users().list)

        first = list(self.streamer.fetch(request))
        second = list(self.streamer.fetch(request))

        self.assertEqual(first, second)
        self.assertNotIn('pageToken', directory.calls[2][1])

    def test_empty_token_terminates(self):
        """An empty continuation token ends pagination."""
        pages = [{'items': [1, 2], 'next': ''}]
        calls = []

        def fetch_page():
            calls.append(1)
            return pages[0]

        streamer = PageStreamer(
            lambda request, token: request,
            lambda response: response['next'],
            lambda response: response['items']
        )
        request = type('Request', (), {'execute': staticmethod(fetch_page)})()

        self.assertEqual(list(streamer.fetch(request)), [1, 2])
        self.assertEqual(len(calls), 1)

    def test_custom_behaviours(self):
        """The streamer works with any request/response shape."""
        pages = {None: {'data': ['a', 'b'], 'cursor': 'p2'},
                 'p2': {'data': ['c'], 'cursor': None}}

        class CursorRequest:
            def __init__(self, cursor=None):
                self.cursor = cursor

            def execute(self):
                return pages[self.cursor]

        streamer = PageStreamer(
            lambda request, token: CursorRequest(token),
            lambda response: response['cursor'],
            lambda response: response['data']
        )

        self.assertEqual(list(streamer.fetch(CursorRequest())), ['a', 'b', 'c'])

    def test_page_without_items_key(self):
        """A page missing its item collection contributes nothing but pagination continues."""
        responses = iter([{'nextPageToken': 't'}, {'users': [user('1', 'a@example.com')]}])
        request = type('Request', (), {
            'execute': lambda self: next(responses),
            'with_page_token': lambda self, token: self,
        })()

        fetched = list(self.streamer.fetch(request))

        self.assertEqual([u['id'] for u in fetched], ['1'])

    def test_error_propagates_unchanged(self):
        """A failing page call surfaces the original exception without retry."""
        directory = FakeDirectory(users=self.make_users(4), page_size=2)
        error = ConnectionError("connection reset")
        directory.error = error
        directory.fail_on = ('users',)

        with self.assertRaises(ConnectionError) as ctx:
            list(self.streamer.fetch(ListRequest(directory.users().list)))

        self.assertIs(ctx.exception, error)
        self.assertEqual(len(directory.calls), 1)


if __name__ == '__main__':
    unittest.main()
