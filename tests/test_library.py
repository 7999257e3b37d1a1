from __future__ import annotations

import random
import unittest

from posearena.errors import UnknownChallengeError
from posearena.poses.library import (
    CHALLENGES,
    DEFAULT_ROUND_COUNT,
    ROUTINES,
    get_challenge,
    select_challenges,
)
from posearena.poses.scoring import VALIDATORS


class ChallengeLibraryTests(unittest.TestCase):
    def test_registry_matches_validators(self) -> None:
        self.assertEqual(set(CHALLENGES), set(VALIDATORS))
        for cid, c in CHALLENGES.items():
            self.assertEqual(c.id, cid)
            self.assertTrue(c.display_name)
            self.assertTrue(c.description)

    def test_routines_reference_known_challenges(self) -> None:
        for name, ids in ROUTINES.items():
            with self.subTest(routine=name):
                self.assertEqual(len(ids), len(set(ids)))
                for cid in ids:
                    self.assertIn(cid, CHALLENGES)
        self.assertEqual(len(ROUTINES["classic"]), 10)

    def test_unknown_challenge_raises_key_error(self) -> None:
        with self.assertRaises(UnknownChallengeError) as ctx:
            get_challenge("moonwalk")
        self.assertIsInstance(ctx.exception, KeyError)
        self.assertIn("moonwalk", str(ctx.exception))

    def test_explicit_list_keeps_order(self) -> None:
        picked = select_challenges(ids=["squat", "t_pose"], routine="classic")
        self.assertEqual([c.id for c in picked], ["squat", "t_pose"])

    def test_routine(self) -> None:
        picked = select_challenges(routine="festive")
        self.assertEqual([c.id for c in picked], ROUTINES["festive"])
        with self.assertRaises(KeyError):
            select_challenges(routine="nope")

    def test_random_sample_without_replacement(self) -> None:
        picked = select_challenges(rng=random.Random(7))
        self.assertEqual(len(picked), DEFAULT_ROUND_COUNT)
        self.assertEqual(len({c.id for c in picked}), DEFAULT_ROUND_COUNT)
        everything = select_challenges(count=1000, rng=random.Random(1))
        self.assertEqual(len(everything), len(CHALLENGES))


if __name__ == "__main__":
    unittest.main()
