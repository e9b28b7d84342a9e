"""\
Tests support for kt.hypermedia tests.

"""

import json
import unittest

import flask

import kt.hypermedia.api
import tests.objects


class HypermediaTestCase(unittest.TestCase):

    def setUp(self):
        super(HypermediaTestCase, self).setUp()
        self.app = flask.Flask(__name__)
        self.app.config['PROPAGATE_EXCEPTIONS'] = True
        self.app.config['TESTING'] = True
        self.app.config['KT_HYPERMEDIA_LINKS'] = tests.objects.LINKS
        self.registry = kt.hypermedia.api.init_app(self.app)
        self.client = self.app.test_client()

    def request_context(self, *args, **kwargs):
        return self.app.test_request_context(*args, **kwargs)

    def http_get(self, path, status=200, **kwargs):
        response = self.client.get(path, **kwargs)
        if status:
            self.assertEqual(
                response.status_code, status,
                f'GET {path} status {response.status_code}, expected {status}')
        return response

    def http_post(self, path, status=201, **kwargs):
        response = self.client.post(path, **kwargs)
        if status:
            self.assertEqual(
                response.status_code, status,
                f'POST {path} status {response.status_code}, expected {status}'
            )
        return response

    def body(self, response):
        return json.loads(response.get_data(as_text=True))
