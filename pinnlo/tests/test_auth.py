import unittest
from unittest.mock import MagicMock

from pinnlo.auth import AuthUser, InMemoryAuthVerifier, SupabaseAuthVerifier


class InMemoryAuthVerifierTests(unittest.TestCase):
    def test_from_config(self):
        verifier = InMemoryAuthVerifier.from_config(
            "dev-token:user-1:dev@example.com, other:user-2, broken, :nobody"
        )
        self.assertEqual(
            verifier.verify("dev-token"),
            AuthUser(id="user-1", email="dev@example.com"),
        )
        self.assertEqual(verifier.verify("other").id, "user-2")
        self.assertIsNone(verifier.verify("broken"))
        self.assertEqual(len(verifier.tokens), 2)

    def test_empty_config(self):
        self.assertEqual(InMemoryAuthVerifier.from_config("").tokens, {})

    def test_add_token(self):
        verifier = InMemoryAuthVerifier()
        verifier.add_token("t", AuthUser(id="u"))
        self.assertEqual(verifier.verify("t").id, "u")


class SupabaseAuthVerifierTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.verifier = SupabaseAuthVerifier(
            "https://project.supabase.co", "anon-key", client=self.client
        )

    def test_valid_token(self):
        user = MagicMock(id="abc", email="a@example.com", user_metadata={"first_name": "A"})
        self.client.auth.get_user.return_value = MagicMock(user=user)

        result = self.verifier.verify("jwt")

        self.client.auth.get_user.assert_called_once_with("jwt")
        self.assertEqual(result.id, "abc")
        self.assertEqual(result.user_metadata, {"first_name": "A"})

    def test_rejected_token(self):
        self.client.auth.get_user.side_effect = RuntimeError("invalid JWT")
        self.assertIsNone(self.verifier.verify("jwt"))

    def test_no_user_in_response(self):
        self.client.auth.get_user.return_value = MagicMock(user=None)
        self.assertIsNone(self.verifier.verify("jwt"))

    def test_requires_url_and_key(self):
        with self.assertRaises(ValueError):
            SupabaseAuthVerifier("", "key", client=self.client)


if __name__ == "__main__":
    unittest.main()
