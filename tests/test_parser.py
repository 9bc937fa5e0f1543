import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from cortex.cortex_parser import parse_cortex_string, parse_value
from cortex.errors import CortexErrorCode, InvalidStructure
from cortex.frame import Frame
from cortex.tokenize import leading_group, split_array_items, tokenize


class TestTokenizer(unittest.TestCase):

    def test_splits_on_depth_zero_whitespace(self):
        tokens = tokenize('query: action:get target:(entity: name:"a b")')
        self.assertEqual(tokens, ['query:', 'action:get', 'target:(entity: name:"a b")'])

    def test_brackets_keep_array_in_one_token(self):
        self.assertEqual(tokenize('list: item_1:[a, b, c]'), ['list:', 'item_1:[a, b, c]'])

    def test_escaped_space_does_not_split(self):
        self.assertEqual(tokenize(r'answer content:a\ b'), ['answer', r'content:a\ b'])

    def test_unbalanced_group_raises(self):
        with self.assertRaises(InvalidStructure):
            tokenize('query: target:(entity: name:x')

    def test_split_array_items(self):
        self.assertEqual(split_array_items('a, "b, c", (entity: name:x), [1, 2]'),
                         ['a', '"b, c"', '(entity: name:x)', '[1, 2]'])

    def test_split_array_rejects_empty_element(self):
        with self.assertRaises(InvalidStructure):
            split_array_items('a,,b')
        with self.assertRaises(InvalidStructure):
            split_array_items('a, ')

    def test_leading_group(self):
        self.assertEqual(leading_group('(answer: content:"x)") trailing'), '(answer: content:"x)")')
        self.assertEqual(leading_group('(answer: content:x'), '')
        self.assertEqual(leading_group('no group'), '')

    def test_deep_nesting_is_a_structure_error(self):
        deep = '(' * 3000 + ')' * 3000
        self.assertEqual(leading_group(deep), '')
        with self.assertRaises(InvalidStructure):
            tokenize('query: target:' + deep)


class TestParseCortexString(unittest.TestCase):

    def test_explicit_roles(self):
        frame = parse_cortex_string('(query: action:action_get target:concept_document)')
        self.assertEqual(frame, Frame('query', action='action_get', target='concept_document'))
        self.assertEqual(list(frame), ['action', 'target'])

    def test_frame_type_without_colon(self):
        frame = parse_cortex_string('(query action:action_get)')
        self.assertEqual(frame.frame_type, 'query')

    def test_positional_roles_follow_role_table(self):
        frame = parse_cortex_string('(query action_get entity_user concept_document)')
        self.assertEqual(dict(frame), {
            'action': 'action_get',
            'agent': 'entity_user',
            'target': 'concept_document',
        })

    def test_positional_overflow_uses_property_n(self):
        frame = parse_cortex_string('(list a b c d e f)')
        self.assertEqual(frame['item_5'], 'e')
        self.assertEqual(frame['property_6'], 'f')

    def test_legacy_two_token_roles(self):
        frame = parse_cortex_string('(event: action: action_jump agent: entity_user)')
        self.assertEqual(dict(frame), {'action': 'action_jump', 'agent': 'entity_user'})

    def test_legacy_bare_role_mixed_with_pairs(self):
        frame = parse_cortex_string('(event: action action_jump status:done)')
        self.assertEqual(dict(frame), {'action': 'action_jump', 'status': 'done'})

    def test_nested_frame(self):
        frame = parse_cortex_string(
            '(query: action:action_get target:(entity: name:"John Doe" type:concept_person))'
        )
        self.assertEqual(frame['target'], Frame('entity', name='John Doe', type='concept_person'))

    def test_colon_inside_nested_frame_keeps_positional_mode(self):
        frame = parse_cortex_string('(answer (entity: name:x))')
        self.assertEqual(frame['content'], Frame('entity', name='x'))

    def test_scalar_values(self):
        frame = parse_cortex_string('(state: entity:entity_x value:-12 ratio:3.5 active:true done:false)')
        self.assertEqual(frame['value'], -12)
        self.assertIsInstance(frame['value'], int)
        self.assertEqual(frame['ratio'], 3.5)
        self.assertIs(frame['active'], True)
        self.assertIs(frame['done'], False)

    def test_arrays(self):
        frame = parse_cortex_string('(list: item_1:[a, b, 3] item_2:[])')
        self.assertEqual(frame['item_1'], ('a', 'b', 3))
        self.assertEqual(frame['item_2'], ())

    def test_reference_kept_verbatim(self):
        frame = parse_cortex_string('(query: action:action_get target:$result.items[0])')
        self.assertEqual(frame['target'], '$result.items[0]')

    def test_quoted_string_with_escapes(self):
        frame = parse_cortex_string(r'(answer: content:"say \"hi\" to C:\\temp")')
        self.assertEqual(frame['content'], 'say "hi" to C:\\temp')

    def test_comments_ignored(self):
        frame = parse_cortex_string('(query: action:action_get // fetch it\n target:concept_document)')
        self.assertEqual(frame['target'], 'concept_document')

    def test_missing_parentheses(self):
        with self.assertRaises(InvalidStructure) as cm:
            parse_cortex_string('query: action:action_get')
        self.assertEqual(cm.exception.code, CortexErrorCode.INVALID_STRUCTURE)
        self.assertEqual(cm.exception.stage, 'encoding')

    def test_empty_structure(self):
        with self.assertRaises(InvalidStructure):
            parse_cortex_string('(   )')

    def test_unknown_frame_type(self):
        with self.assertRaises(InvalidStructure) as cm:
            parse_cortex_string('(request: action:get)')
        self.assertIn('request', cm.exception.message)

    def test_missing_role_value(self):
        with self.assertRaises(InvalidStructure):
            parse_cortex_string('(query: action:)')
        with self.assertRaises(InvalidStructure):
            parse_cortex_string('(query: action: target:x)')

    def test_unbalanced_nesting(self):
        with self.assertRaises(InvalidStructure):
            parse_cortex_string('(query: action:(entity: name:x)')

    def test_deeply_nested_input(self):
        with self.assertRaises(InvalidStructure):
            parse_cortex_string('(query: target:' + '(' * 3000 + ')' * 3000 + ')')

    def test_non_string_input(self):
        with self.assertRaises(InvalidStructure):
            parse_cortex_string(None)


def test_parse_value_ladder():
    assert parse_value('(entity: name:x)') == Frame('entity', name='x')
    assert parse_value('[1, 2.5]') == (1, 2.5)
    assert parse_value('"12"') == '12'
    assert parse_value('12') == 12
    assert parse_value('true') is True
    assert parse_value('$x') == '$x'
    assert parse_value('plain') == 'plain'
