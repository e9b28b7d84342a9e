"""\
Tests for kt.hypermedia.descriptor.

"""

import unittest

import zope.component

import kt.hypermedia.descriptor
import kt.hypermedia.interfaces
import tests.objects

from tests.objects import TO_MANY, TO_ONE, ident, item, order, rel


Malformed = kt.hypermedia.interfaces.MalformedDescriptorError


class ResourceIdentifierTestCase(unittest.TestCase):

    def test_id_is_text(self):
        ri = ident('item', 42)
        self.assertEqual(ri.id, '42')

    def test_equality(self):
        self.assertEqual(ident('item', 'a'), ident('item', 'a'))
        self.assertNotEqual(ident('item', 'a'), ident('item', 'b'))
        self.assertNotEqual(ident('item', 'a'), ident('product', 'a'))
        self.assertEqual(len({ident('item', 'a'), ident('item', 'a')}), 1)

    def test_equal_to_descriptor(self):
        self.assertEqual(ident('item', 'a'), item('a'))


class RelationshipDescriptorTestCase(unittest.TestCase):

    def test_defaults(self):
        r = rel('items', TO_MANY)
        self.assertEqual(r.link_template, 'items')
        self.assertFalse(r.resolved())
        self.assertEqual(r.targets(), ())

    def test_link_template(self):
        r = rel('billingItems', TO_MANY, [], link_template='items')
        self.assertEqual(r.link_template, 'items')

    def test_empty_to_many_is_resolved(self):
        r = rel('items', TO_MANY, [])
        self.assertTrue(r.resolved())
        self.assertEqual(r.targets(), ())

    def test_data_list_is_copied(self):
        data = [ident('item', 'a')]
        r = rel('items', TO_MANY, data)
        data.append(ident('item', 'b'))
        self.assertEqual(len(r.targets()), 1)

    def test_to_one_targets(self):
        r = rel('customer', TO_ONE, ident('customer', '7'))
        self.assertEqual(r.targets(), (ident('customer', '7'),))

    def test_target_not_a_resource(self):
        r = rel('items', TO_MANY, ['a'])
        with self.assertRaises(Malformed):
            r.targets()


class ValidationTestCase(unittest.TestCase):

    def test_valid(self):
        o = order(
            total=42,
            relationships=[
                rel('items', TO_MANY, [item('a'), ident('item', 'b')]),
                rel('customer', TO_ONE, None),
            ])
        o.validate()

    def test_relationship_lookup(self):
        items = rel('items', TO_MANY, [])
        o = order(relationships=[items])
        self.assertIs(o.relationship('items'), items)
        self.assertIsNone(o.relationship('customer'))

    def test_to_many_with_single_resource(self):
        o = order(relationships=[rel('items', TO_MANY, item('a'))])
        with self.assertRaises(Malformed) as cm:
            o.validate()
        self.assertIn("to-many relationship 'items' requires a sequence",
                      str(cm.exception))
        self.assertIs(cm.exception.descriptor, o)

    def test_to_one_with_sequence(self):
        o = order(relationships=[
            rel('customer', TO_ONE, [ident('customer', '7')])])
        with self.assertRaises(Malformed) as cm:
            o.validate()
        self.assertIn('cannot hold a sequence', str(cm.exception))

    def test_unknown_cardinality(self):
        o = order(relationships=[rel('items', 'some', [])])
        with self.assertRaises(Malformed) as cm:
            o.validate()
        self.assertIn("'relationships'", str(cm.exception))

    def test_invalid_type_name(self):
        d = kt.hypermedia.descriptor.ResourceDescriptor('bad type', '1')
        with self.assertRaises(Malformed) as cm:
            d.validate()
        self.assertIn("'type'", str(cm.exception))

    def test_empty_id(self):
        d = kt.hypermedia.descriptor.ResourceDescriptor('order', '')
        with self.assertRaises(Malformed) as cm:
            d.validate()
        self.assertIn("'id'", str(cm.exception))

    def test_invalid_attribute_name(self):
        d = order(**{'has space': True})
        with self.assertRaises(Malformed):
            d.validate()

    def test_reserved_attribute_names(self):
        for name in ('type', 'id'):
            d = order()
            d.attributes[name] = 'x'
            with self.assertRaises(Malformed) as cm:
                d.validate()
            self.assertIn(f'{name!r} is reserved', str(cm.exception))

    def test_attribute_named_like_relationship(self):
        d = order(items=3, relationships=[rel('items', TO_MANY, [])])
        with self.assertRaises(Malformed):
            d.validate()

    def test_nested_resource_attribute(self):
        d = order(customer=tests.objects.customer())
        with self.assertRaises(Malformed) as cm:
            d.validate()
        self.assertIn('use a relationship instead', str(cm.exception))

    def test_nested_resource_in_attribute_list(self):
        d = order(lines=[ident('item', 'a')])
        with self.assertRaises(Malformed):
            d.validate()

    def test_duplicate_relationship(self):
        d = order(relationships=[rel('items', TO_MANY, []),
                                 rel('items', TO_MANY, None)])
        with self.assertRaises(Malformed) as cm:
            d.validate()
        self.assertIn("duplicate relationship 'items'", str(cm.exception))

    def test_embedded_descriptor_validated(self):
        bad = kt.hypermedia.descriptor.ResourceDescriptor('item', 'a',
                                                          {'id': 'x'})
        d = order(relationships=[rel('items', TO_MANY, [bad])])
        with self.assertRaises(Malformed) as cm:
            d.validate()
        self.assertIs(cm.exception.descriptor, bad)

    def test_embedded_identifier_validated(self):
        d = order(relationships=[
            rel('items', TO_MANY, [ident('bad type', 'a')])])
        with self.assertRaises(Malformed) as cm:
            d.validate()
        self.assertIn("relationship 'items' refers to", str(cm.exception))

    def test_embedding_cycle(self):
        d = order()
        d.relationships = (rel('parent', TO_ONE, d),)
        with self.assertRaises(Malformed) as cm:
            d.validate()
        self.assertIn('embedding cycle through order/1', str(cm.exception))

    def test_shared_embedded_descriptor_is_not_a_cycle(self):
        shared = item('b')
        d = order(relationships=[
            rel('billingItems', TO_MANY, [item('a'), shared]),
            rel('shippingItems', TO_MANY, [shared]),
        ])
        d.validate()


class AdaptationTestCase(unittest.TestCase):

    def setUp(self):
        super(AdaptationTestCase, self).setUp()
        gsm = zope.component.getGlobalSiteManager()
        gsm.registerAdapter(tests.objects.product_descriptor)

    def tearDown(self):
        gsm = zope.component.getGlobalSiteManager()
        gsm.unregisterAdapter(tests.objects.product_descriptor)
        super(AdaptationTestCase, self).tearDown()

    def test_related_app_object(self):
        product = tests.objects.Product('p1', 'Widget', 10)
        r = rel('product', TO_ONE, product)
        target, = r.targets()
        self.assertTrue(
            kt.hypermedia.interfaces.IResourceDescriptor.providedBy(target))
        self.assertEqual((target.type, target.id), ('product', 'p1'))
        self.assertEqual(target.attributes, dict(name='Widget', price=10))
