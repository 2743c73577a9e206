from __future__ import annotations

import unittest
from unittest import mock

import requests

from api import RECENT_BOOKS_URL, CatalogFetchError, build_record, fetch_recent_books
from models import Origin


def _response(payload: object = None, *, json_error: bool = False, http_error: bool = False) -> mock.Mock:
    response = mock.Mock()
    if http_error:
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


class BuildRecordTests(unittest.TestCase):
    def test_maps_catalog_entry_to_remote_record(self) -> None:
        record = build_record({"id": 1, "title": "T", "authors": "A", "image": "img.png", "url": "u"})

        self.assertEqual(record.id, "api-1")
        self.assertIs(record.origin, Origin.REMOTE)
        self.assertEqual(record.title, "T")
        self.assertEqual(record.author, "A")
        self.assertEqual(record.published_date, "")
        self.assertEqual(record.publisher, "")
        self.assertEqual(record.image, "img.png")
        self.assertEqual(record.url, "u")
        self.assertEqual(record.subtitle, "")
        self.assertTrue(record.read_only)

    def test_keeps_subtitle(self) -> None:
        record = build_record({"id": "abc", "title": "T", "authors": "A", "subtitle": "Sub"})
        self.assertEqual(record.id, "api-abc")
        self.assertEqual(record.subtitle, "Sub")


class FetchRecentBooksTests(unittest.TestCase):
    @mock.patch("api.requests.get")
    def test_ok_response_is_converted(self, get: mock.Mock) -> None:
        get.return_value = _response(
            {
                "status": "ok",
                "books": [
                    {"id": 1, "title": "T", "authors": "A", "image": "img.png", "url": "u"},
                    {"id": 2, "title": "U", "authors": "B", "subtitle": "S", "image": "", "url": "v"},
                ],
            }
        )

        records = fetch_recent_books(timeout=3)

        get.assert_called_once_with(RECENT_BOOKS_URL, timeout=3)
        self.assertEqual([record.id for record in records], ["api-1", "api-2"])

    @mock.patch("api.requests.get")
    def test_non_ok_status_returns_none(self, get: mock.Mock) -> None:
        get.return_value = _response({"status": "error", "books": []})
        self.assertIsNone(fetch_recent_books())

    @mock.patch("api.requests.get")
    def test_network_failure_raises(self, get: mock.Mock) -> None:
        get.side_effect = requests.ConnectionError("unreachable")
        with self.assertRaises(CatalogFetchError):
            fetch_recent_books()

    @mock.patch("api.requests.get")
    def test_http_error_raises(self, get: mock.Mock) -> None:
        get.return_value = _response(http_error=True)
        with self.assertRaises(CatalogFetchError):
            fetch_recent_books()

    @mock.patch("api.requests.get")
    def test_malformed_bodies_raise(self, get: mock.Mock) -> None:
        for response in (
            _response(json_error=True),
            _response(["not", "an", "object"]),
            _response({"status": "ok"}),
            _response({"status": "ok", "books": [{"title": "no id"}]}),
        ):
            get.return_value = response
            with self.assertRaises(CatalogFetchError):
                fetch_recent_books()


if __name__ == "__main__":
    unittest.main()
