import os
import sys
import unittest

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from cortex.config import CortexConfig
from cortex.cortex_core import CortexCore, ProcessingRequest
from cortex.errors import CortexError, CortexErrorCode, InvalidStructure, ProcessingFailed
from cortex.frame import Frame
from cortex.serializer import serialize_frame


def make_config(**overrides):
    settings = dict(
        core_model="test-model",
        cache_enabled=True,
        cache_max_entries=500,
        cache_ttl_seconds=1800,
        min_semantic_integrity=0.0,
        debug=False,
    )
    settings.update(overrides)
    return CortexConfig(**settings)


class FakeInvoker:
    """Records prompts and returns canned replies (or raises)."""

    def __init__(self, reply='(answer: content:"42")', error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def invoke(self, prompt, model):
        self.calls.append((prompt, model))
        if self.error is not None:
            raise self.error
        return self.reply


QUERY = Frame('query', action='action_get', tags=[], target='concept_document')


class TestCompressionMode(unittest.TestCase):

    def setUp(self):
        self.core = CortexCore(make_config())

    def test_compresses_and_reports_savings(self):
        result = self.core.compress(QUERY)
        self.assertEqual(result.output, Frame('query', action='action_get', target='concept_document'))
        self.assertFalse(result.from_cache)

        saved = len(serialize_frame(QUERY)) - len(serialize_frame(result.output))
        [opt] = result.optimizations
        self.assertEqual(opt.type, 'semantic_compression')
        self.assertEqual(opt.tokens_saved, -(-saved // 4))
        self.assertAlmostEqual(opt.reduction_percentage, saved / len(serialize_frame(QUERY)) * 100)
        self.assertEqual(opt.confidence, 0.8)
        self.assertIsNotNone(result.metadata['semantic_integrity'])

    def test_cache_determinism_and_hit_count(self):
        first = self.core.compress(QUERY)
        second = self.core.compress(QUERY)
        self.assertEqual(first.output, second.output)
        self.assertTrue(second.from_cache)
        self.assertEqual(second.metadata['core_model'], 'cache')
        self.assertEqual(second.optimizations, first.optimizations)

        info = self.core.get_cache_info()
        self.assertEqual(info['size'], 1)
        self.assertEqual(info['entries'][0]['hitCount'], 1)

    def test_stats(self):
        self.core.compress(QUERY)
        self.core.compress(QUERY)
        stats = self.core.get_stats()
        self.assertEqual(stats.total_processed, 2)
        self.assertEqual(stats.successful, 2)
        self.assertEqual(stats.cache_hits, 1)
        self.assertEqual(stats.cache_misses, 1)
        self.assertEqual(stats.cache_hit_rate, 0.5)
        self.assertEqual(stats.total_tokens_saved, 2)
        self.assertGreater(stats.average_compression_ratio, 0.0)

    def test_options_and_operation_are_part_of_the_key(self):
        self.core.compress(QUERY)
        self.core.compress(QUERY, {"targetReduction": 0.5})
        self.core.process(ProcessingRequest(QUERY, "optimize"))
        self.assertEqual(self.core.get_cache_info()['size'], 3)

    def test_cache_disabled(self):
        core = CortexCore(make_config(cache_enabled=False))
        core.compress(QUERY)
        self.assertFalse(core.compress(QUERY).from_cache)
        self.assertEqual(core.get_cache_info()['size'], 0)

    def test_clear_cache(self):
        self.core.compress(QUERY)
        self.core.clear_cache()
        self.assertEqual(self.core.get_cache_info()['size'], 0)

    def test_low_integrity_compression_rejected(self):
        core = CortexCore(make_config(min_semantic_integrity=0.99))
        frame = Frame('query', action='action_get', target='entity_a', target_2='entity_b', object='entity_c')
        result = core.compress(frame)
        self.assertEqual(result.output, frame)
        self.assertTrue(result.metadata['compression_rejected'])
        self.assertEqual(result.optimizations, [])


class TestAnswerMode(unittest.TestCase):

    def test_reply_parsed_into_answer(self):
        invoker = FakeInvoker()
        core = CortexCore(make_config(), invoker=invoker)
        result = core.answer(Frame('query', action='action_get', target='concept_meaning'))
        self.assertEqual(result.output, Frame('answer', content='42'))
        self.assertEqual(result.metadata['core_model'], 'test-model')
        self.assertFalse(result.metadata['parse_error'])

        prompt, model = invoker.calls[0]
        self.assertEqual(model, 'test-model')
        self.assertIn('(query action:action_get target:concept_meaning)', prompt)

    def test_cache_hit_skips_invoker(self):
        invoker = FakeInvoker()
        core = CortexCore(make_config(), invoker=invoker)
        frame = Frame('query', action='action_get', target='concept_meaning')
        core.answer(frame)
        second = core.answer(frame)
        self.assertTrue(second.from_cache)
        self.assertEqual(len(invoker.calls), 1)

    def test_custom_prompt_prefix(self):
        invoker = FakeInvoker()
        core = CortexCore(make_config(), invoker=invoker)
        core.answer(Frame('query', action='action_get'), prompt="Be brief.")
        self.assertTrue(invoker.calls[0][0].startswith("Be brief."))

    def test_prose_reply_falls_back(self):
        core = CortexCore(make_config(), invoker=FakeInvoker(reply="It is 42."))
        result = core.answer(Frame('query', action='action_get'))
        self.assertEqual(result.output['content'], "It is 42.")
        self.assertIs(result.output['parseError'], True)
        self.assertTrue(result.metadata['parse_error'])
        self.assertEqual(result.optimizations, [])

    def test_deeply_nested_reply_falls_back(self):
        reply = "(answer: content:" + "(" * 3000 + ")" * 3000 + ")"
        core = CortexCore(make_config(), invoker=FakeInvoker(reply=reply))
        result = core.answer(Frame('query', action='action_get'))
        self.assertEqual(result.output['content'], reply)
        self.assertIs(result.output['parseError'], True)
        self.assertEqual(core.get_stats().failed, 0)

    def test_missing_invoker(self):
        core = CortexCore(make_config())
        with self.assertRaises(ProcessingFailed):
            core.answer(Frame('query', action='action_get'))


class TestFailures(unittest.TestCase):

    def test_foreign_error_wrapped_once(self):
        boom = RuntimeError("boom")
        core = CortexCore(make_config(), invoker=FakeInvoker(error=boom))
        frame = Frame('query', action='action_get')
        with self.assertRaises(ProcessingFailed) as cm:
            core.answer(frame)
        err = cm.exception
        self.assertEqual(err.code, CortexErrorCode.PROCESSING_FAILED)
        self.assertEqual(err.context['operation'], 'answer')
        self.assertEqual(err.context['input'], frame.to_dict())
        self.assertIs(err.__cause__, boom)

    def test_failure_leaves_no_cache_entry(self):
        core = CortexCore(make_config(), invoker=FakeInvoker(error=RuntimeError("boom")))
        with self.assertRaises(ProcessingFailed):
            core.answer(Frame('query', action='action_get'))
        self.assertEqual(core.get_cache_info()['size'], 0)
        stats = core.get_stats()
        self.assertEqual(stats.failed, 1)
        self.assertEqual(stats.successful, 0)

    def test_cortex_error_passes_through(self):
        timeout = CortexError(CortexErrorCode.TIMEOUT_ERROR, "model timed out")
        core = CortexCore(make_config(), invoker=FakeInvoker(error=timeout))
        with self.assertRaises(CortexError) as cm:
            core.answer(Frame('query', action='action_get'))
        self.assertIs(cm.exception, timeout)

    def test_unsupported_operation(self):
        core = CortexCore(make_config())
        with self.assertRaises(ProcessingFailed) as cm:
            core.process(ProcessingRequest(QUERY, "summon"))
        self.assertIn("summon", cm.exception.message)

    def test_non_frame_input(self):
        core = CortexCore(make_config())
        with self.assertRaises(InvalidStructure):
            core.process(ProcessingRequest({'frameType': 'query'}))


@pytest.mark.parametrize("operation", ["compress", "optimize", "analyze", "transform"])
def test_compression_operations(operation):
    core = CortexCore(make_config())
    result = core.process(ProcessingRequest(QUERY, operation))
    assert 'tags' not in result.output
    assert result.metadata['operation'] == operation


def test_result_to_dict():
    core = CortexCore(make_config())
    data = core.compress(QUERY).to_dict()
    assert data['output']['frameType'] == 'query'
    assert data['optimizations'][0]['savings']['tokensSaved'] == 2
    assert data['metadata']['from_cache'] is False
