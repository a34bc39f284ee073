import unittest

from decoding.board_profiles import (
    BOARD_PROFILES,
    GENERIC_PROFILE,
    build_ao_distribution,
    format_command_words,
    resolve_board_profile,
)


class TestResolveBoardProfile(unittest.TestCase):
    def test_board_with_a_level(self):
        self.assertEqual(resolve_board_profile("AQA Physics", "A-Level").key, "AQA_A_LEVEL")
        self.assertEqual(resolve_board_profile("Edexcel", "A level").key, "EDEXCEL_A_LEVEL")

    def test_ocr_b_before_ocr_a(self):
        self.assertEqual(resolve_board_profile("OCR B Advancing Physics", "A-level").key, "OCR_B_A_LEVEL")
        self.assertEqual(resolve_board_profile("OCR Physics A", None).key, "OCR_A_A_LEVEL")

    def test_partial_match_without_level(self):
        self.assertEqual(resolve_board_profile("Cambridge 9702", None).key, "CIE_9702")
        self.assertEqual(resolve_board_profile("wjec", "").key, "WJEC_A_LEVEL")

    def test_ib_signal_in_either_field(self):
        self.assertEqual(resolve_board_profile("", "IB HL").key, "IB_DP")
        self.assertEqual(resolve_board_profile("IB Physics", None).key, "IB_DP")

    def test_unknown_falls_back_to_generic(self):
        self.assertIs(resolve_board_profile("Computer Science", "GCSE"), GENERIC_PROFILE)
        self.assertIs(resolve_board_profile(None, None), GENERIC_PROFILE)

    def test_never_raises_on_odd_input(self):
        self.assertIsNotNone(resolve_board_profile(123, ["x"]))

    def test_all_profiles_have_three_ao_rows(self):
        for profile in BOARD_PROFILES.values():
            self.assertEqual(len(format_command_words(profile).splitlines()), 3)


class TestAODistribution(unittest.TestCase):
    def test_bands(self):
        self.assertIn("primarily AO1", build_ao_distribution(1))
        self.assertIn("1 AO3 if marks >= 4", build_ao_distribution(4))
        self.assertIn("Majority should be AO2", build_ao_distribution(6))
        self.assertIn("recall -> application -> evaluation", build_ao_distribution(8))


if __name__ == "__main__":
    unittest.main()
