import os
import unittest
from unittest.mock import AsyncMock, patch

from decoding.errors import ConfigurationError, StageTimeoutError
from decoding.hint_engine import has_contrast, word_count
from decoding.hint_refiner import MAX_ITEMS, refine_hints
from decoding.schemas import HintItem
from tests.oracle import ORACLE_ENV, reply


def items(n, hint="Consider it"):
    return [
        HintItem(id=f"mcq-{i}", question="What is meant by terminal velocity?", options=["a", "b", "c", "d"], hint=hint)
        for i in range(1, n + 1)
    ]


@patch.dict(os.environ, ORACLE_ENV)
class TestRefineHints(unittest.IsolatedAsyncioTestCase):
    async def test_oracle_rewrites_are_finalized(self):
        rewritten = {"hints": [
            {"id": "mcq-1", "hint": "Hint: terminal velocity is reached when drag balances weight, so resultant force is zero."},
            {"id": "mcq-2", "hint": "Note the acceleration at terminal velocity"},
        ]}
        with patch("decoding.gpt_client.call_gpt", AsyncMock(return_value=reply(rewritten))):
            result = await refine_hints(items(2), "Subject: Physics", "A skydiver falls")
        self.assertEqual([h.id for h in result], ["mcq-1", "mcq-2"])
        self.assertEqual(result[0].hint, rewritten["hints"][0]["hint"])
        self.assertTrue(result[1].hint.startswith("Hint: Note the acceleration at terminal velocity."))
        self.assertTrue(all(11 <= word_count(h.hint) <= 18 for h in result))

    async def test_oracle_failure_uses_local_engine(self):
        with patch("decoding.gpt_client.call_gpt", AsyncMock(side_effect=StageTimeoutError("slow"))):
            result = await refine_hints(items(4))
        hints = [h.hint for h in result]
        self.assertEqual(len(hints), 4)
        self.assertEqual(len(set(hints)), 4)
        self.assertTrue(all(h.startswith("Hint: ") for h in hints))
        self.assertLessEqual(sum(has_contrast(h) for h in hints), 1)

    async def test_batch_is_capped(self):
        fake = AsyncMock(side_effect=StageTimeoutError("slow"))
        with patch("decoding.gpt_client.call_gpt", fake):
            result = await refine_hints(items(MAX_ITEMS + 5))
        self.assertEqual(len(result), MAX_ITEMS)

    async def test_empty_batch(self):
        self.assertEqual(await refine_hints([]), [])


class TestRefineHintsConfiguration(unittest.IsolatedAsyncioTestCase):
    async def test_missing_configuration_is_terminal(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigurationError):
                await refine_hints(items(1))


if __name__ == "__main__":
    unittest.main()
