"""\
Tests for kt.hypermedia.jsonapi.

"""

import unittest

import kt.hypermedia.descriptor
import kt.hypermedia.interfaces
import kt.hypermedia.jsonapi
import tests.objects

from tests.objects import TO_MANY, TO_ONE, customer, ident, item, order, rel


class JSONAPIBuilderTestCase(unittest.TestCase):

    def setUp(self):
        super(JSONAPIBuilderTestCase, self).setUp()
        self.registry = tests.objects.registry()
        self.builder = kt.hypermedia.jsonapi.JSONAPIBuilder(self.registry)

    def test_provides_interface(self):
        self.assertTrue(
            kt.hypermedia.interfaces.IDocumentBuilder.providedBy(self.builder))
        self.assertEqual(self.builder.content_type,
                         'application/vnd.api+json')
        self.assertEqual(self.builder.format, 'jsonapi')

    def test_identifier_references(self):
        descriptor = order(
            total=42,
            relationships=[
                rel('items', TO_MANY, [ident('item', 'a'),
                                       ident('item', 'b')]),
            ])
        doc = self.builder.build(descriptor)
        self.assertEqual(doc, {
            'data': {
                'type': 'order',
                'id': '1',
                'attributes': {'total': 42},
                'relationships': {
                    'items': {
                        'links': {
                            'related': '/orders/1/relationships/items',
                        },
                        'data': [
                            {'type': 'item', 'id': 'a'},
                            {'type': 'item', 'id': 'b'},
                        ],
                    },
                },
            },
        })

    def test_attributes_are_copied(self):
        descriptor = order(total=42)
        doc = self.builder.build(descriptor)
        doc['data']['attributes']['total'] = 0
        self.assertEqual(descriptor.attributes, {'total': 42})

    def test_no_relationships(self):
        doc = self.builder.build(customer('7', name='Ann'))
        self.assertEqual(doc, {
            'data': {
                'type': 'customer',
                'id': '7',
                'attributes': {'name': 'Ann'},
            },
        })

    def test_empty_to_many_vs_unresolved(self):
        descriptor = order(relationships=[
            rel('items', TO_MANY, []),
            rel('billingItems', TO_MANY, None),
        ])
        doc = self.builder.build(descriptor)
        rels = doc['data']['relationships']
        self.assertEqual(rels['items']['data'], [])
        self.assertIsNone(rels['billingItems']['data'])
        self.assertIn('data', rels['billingItems'])
        self.assertNotIn('included', doc)

    def test_to_one(self):
        descriptor = order(relationships=[
            rel('customer', TO_ONE, ident('customer', '7')),
        ])
        doc = self.builder.build(descriptor)
        self.assertEqual(doc['data']['relationships']['customer'], {
            'links': {'related': '/customers/7'},
            'data': {'type': 'customer', 'id': '7'},
        })

    def test_embedded_resources_are_included(self):
        descriptor = order(relationships=[
            rel('customer', TO_ONE, customer('7', name='Ann')),
        ])
        doc = self.builder.build(descriptor)
        self.assertEqual(doc['data']['relationships']['customer']['data'],
                         {'type': 'customer', 'id': '7'})
        self.assertEqual(doc['included'], [
            {'type': 'customer', 'id': '7', 'attributes': {'name': 'Ann'}},
        ])

    def test_overlapping_relationships_included_once(self):
        a, b, c = item('a'), item('b', quantity=2), item('c')
        descriptor = order(relationships=[
            rel('billingItems', TO_MANY, [a, b]),
            rel('shippingItems', TO_MANY, [item('b', quantity=2), c]),
        ])
        doc = self.builder.build(descriptor)
        rels = doc['data']['relationships']
        self.assertEqual(rels['billingItems']['data'], [
            {'type': 'item', 'id': 'a'},
            {'type': 'item', 'id': 'b'},
        ])
        self.assertEqual(rels['shippingItems']['data'], [
            {'type': 'item', 'id': 'b'},
            {'type': 'item', 'id': 'c'},
        ])
        self.assertEqual(
            [(res['type'], res['id']) for res in doc['included']],
            [('item', 'a'), ('item', 'b'), ('item', 'c')])
        self.assertEqual(doc['included'][1]['attributes'], {'quantity': 2})
        for res in doc['included']:
            self.assertNotIn('included', res)

    def test_included_resources_are_flattened(self):
        descriptor = order(relationships=[
            rel('items', TO_MANY, [
                item('a', relationships=[
                    rel('product', TO_ONE, _product('p1')),
                ]),
            ]),
        ])
        doc = self.builder.build(descriptor)
        keys = [(res['type'], res['id']) for res in doc['included']]
        self.assertEqual(keys, [('item', 'a'), ('product', 'p1')])
        included_item = [res for res in doc['included']
                         if res['type'] == 'item'][0]
        self.assertEqual(included_item['relationships'], {
            'product': {
                'links': {
                    'related': {'href': '/products/p1', 'title': 'Product'},
                },
                'data': {'type': 'product', 'id': 'p1'},
            },
        })

    def test_included_in_order_of_discovery(self):
        descriptor = order(relationships=[
            rel('items', TO_MANY, [
                item('a', relationships=[
                    rel('product', TO_ONE, _product('p1')),
                ]),
                item('b'),
            ]),
            rel('customer', TO_ONE, customer('7')),
        ])
        doc = self.builder.build(descriptor)
        self.assertEqual(
            [(res['type'], res['id']) for res in doc['included']],
            [('item', 'a'), ('product', 'p1'), ('item', 'b'),
             ('customer', '7')])
        self.assertNotIn(None, doc['included'])

    def test_primary_resource_not_included(self):
        descriptor = customer('7', relationships=[
            rel('lastOrder', TO_ONE, order('1', relationships=[
                rel('customer', TO_ONE, customer('7')),
            ])),
        ])
        doc = self.builder.build(descriptor)
        self.assertEqual(
            [(res['type'], res['id']) for res in doc['included']],
            [('order', '1')])

    def test_self_link(self):
        builder = kt.hypermedia.jsonapi.JSONAPIBuilder(
            self.registry, self_link=True)
        doc = builder.build(order(total=42))
        self.assertEqual(doc['links'], {'self': '/orders/1'})

    def test_no_self_link_by_default(self):
        doc = self.builder.build(order(total=42))
        self.assertNotIn('links', doc)

    def test_unknown_relation(self):
        descriptor = order(relationships=[rel('wishlist', TO_MANY, [])])
        with self.assertRaises(kt.hypermedia.interfaces.UnknownRelationError):
            self.builder.build(descriptor)

    def test_cardinality_mismatch(self):
        descriptor = order(relationships=[rel('items', TO_MANY, item('a'))])
        with self.assertRaises(
                kt.hypermedia.interfaces.MalformedDescriptorError):
            self.builder.build(descriptor)

    def test_collection(self):
        shared = customer('7')
        doc = self.builder.build_collection([
            order('1', relationships=[rel('customer', TO_ONE, shared)]),
            order('2', relationships=[rel('customer', TO_ONE, shared)]),
        ], '/customers/7/orders')
        self.assertEqual(doc['links'], {'self': '/customers/7/orders'})
        self.assertEqual([res['id'] for res in doc['data']], ['1', '2'])
        self.assertEqual(doc['included'], [
            {'type': 'customer', 'id': '7', 'attributes': {}},
        ])

    def test_collection_members_not_included(self):
        doc = self.builder.build_collection([
            order('1', relationships=[rel('customer', TO_ONE, customer(
                '7', relationships=[rel('lastOrder', TO_ONE, order('2'))]))]),
            order('2'),
        ], '/orders')
        self.assertEqual(
            [(res['type'], res['id']) for res in doc['included']],
            [('customer', '7')])


def _product(sku):
    return kt.hypermedia.descriptor.ResourceDescriptor(
        'product', sku, dict(name='Widget'))
