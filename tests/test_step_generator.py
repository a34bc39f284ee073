import os
import unittest
from unittest.mock import AsyncMock, patch

from decoding.board_profiles import BOARD_PROFILES, GENERIC_PROFILE
from decoding.errors import ParseError
from decoding.step_generator import build_step_prompt, generate_steps, parse_step_response
from tests.oracle import ORACLE_ENV, USAGE, oracle_mcq, reply

SOLUTION = {"finalAnswer": {"a": "2 m/s²"}, "unit": "m/s²", "workingSteps": ["Find a"]}


class TestParseStepResponse(unittest.TestCase):
    def test_valid_items_get_sequential_ids(self):
        result = parse_step_response({"mcqs": [oracle_mcq(1), oracle_mcq(2)], "solution": SOLUTION})
        self.assertEqual([s.id for s in result.steps], ["mcq-1", "mcq-2"])
        self.assertEqual([s.step for s in result.steps], [1, 2])
        self.assertEqual(result.steps[0].calculation_step.formula, "a = Δv / t")
        self.assertEqual(result.dropped, 0)

    def test_malformed_items_are_dropped(self):
        three_options = dict(oracle_mcq(2), options=["a", "b", "c"])
        bad_index = dict(oracle_mcq(3), correctAnswer=4)
        empty_question = dict(oracle_mcq(4), question="  ")
        result = parse_step_response({
            "mcqs": [oracle_mcq(1), three_options, bad_index, empty_question, "junk", oracle_mcq(5)],
            "solution": SOLUTION,
        })
        self.assertEqual([s.id for s in result.steps], ["mcq-1", "mcq-6"])
        self.assertEqual(result.dropped, 4)

    def test_index_alias_accepted(self):
        item = oracle_mcq(1)
        item["correctAnswerIndex"] = item.pop("correctAnswer")
        item["correctAnswerIndex"] = 3
        self.assertEqual(parse_step_response({"mcqs": [item], "solution": {}}).steps[0].correct_answer, 3)

    def test_no_usable_item(self):
        with self.assertRaises(ParseError):
            parse_step_response({"mcqs": [{"question": "q"}], "solution": SOLUTION})

    def test_wrong_top_level_shape(self):
        with self.assertRaises(ParseError):
            parse_step_response({"steps": [oracle_mcq(1)]})
        with self.assertRaises(ParseError):
            parse_step_response({"mcqs": "none", "solution": SOLUTION})


class TestBuildStepPrompt(unittest.TestCase):
    def test_prompt_carries_board_guidance(self):
        prompt = build_step_prompt("A ball is thrown.", 5, BOARD_PROFILES["AQA_A_LEVEL"], "Subject: Physics")
        self.assertIn("EXACTLY 5", prompt)
        self.assertIn("A ball is thrown.", prompt)
        self.assertIn("Subject: Physics", prompt)
        self.assertIn("Majority should be AO2", prompt)
        self.assertIn("AO1 (", prompt)

    def test_generic_profile_prompt_formats(self):
        prompt = build_step_prompt("x" * 10000, 1, GENERIC_PROFILE)
        self.assertIn('"mcqs"', prompt)
        self.assertLess(prompt.count("x"), 6100)


@patch.dict(os.environ, ORACLE_ENV)
class TestGenerateSteps(unittest.IsolatedAsyncioTestCase):
    async def test_oracle_round(self):
        fake = AsyncMock(return_value=reply({"mcqs": [oracle_mcq(1), oracle_mcq(2)], "solution": SOLUTION}))
        with patch("decoding.gpt_client.call_gpt", fake):
            result = await generate_steps("A cart accelerates.", 2, GENERIC_PROFILE)
        self.assertEqual(len(result.steps), 2)
        self.assertEqual(result.usage, USAGE)
        self.assertEqual(result.solution.final_answer, {"a": "2 m/s²"})
        self.assertIsNotNone(fake.call_args.kwargs["timeout"])

    async def test_garbage_is_parse_error(self):
        with patch("decoding.gpt_client.call_gpt", AsyncMock(return_value=reply("no json here"))):
            with self.assertRaises(ParseError):
                await generate_steps("A cart accelerates.", 2, GENERIC_PROFILE)


if __name__ == "__main__":
    unittest.main()
