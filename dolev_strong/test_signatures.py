# dolev_strong/test_signatures.py
import unittest

from dolev_strong.exceptions import DuplicateSignerError, EmptyChainError
from dolev_strong.messages import Message, MessageType
from dolev_strong.signatures import SignatureChain


class TestSignatureChain(unittest.TestCase):

    def test_extend_is_copy_append(self):
        """Extending returns a new chain and leaves the original alone"""
        chain = SignatureChain.of(0)
        extended = chain.extend(2)
        self.assertEqual(chain.to_list(), [0])
        self.assertEqual(extended.to_list(), [0, 2])
        self.assertEqual(extended.extend(1).to_list(), [0, 2, 1])

    def test_extend_rejects_duplicate_signer(self):
        chain = SignatureChain.of(0, 1)
        with self.assertRaises(DuplicateSignerError) as ctx:
            chain.extend(1)
        self.assertEqual(ctx.exception.signer, 1)
        self.assertEqual(ctx.exception.chain, (0, 1))

    def test_constructor_rejects_duplicates(self):
        with self.assertRaises(DuplicateSignerError):
            SignatureChain.from_list([0, 3, 0])

    def test_unique_signer_count(self):
        self.assertEqual(SignatureChain().unique_signer_count(), 0)
        self.assertEqual(SignatureChain.of(0, 4, 2).unique_signer_count(), 3)

    def test_first_signer(self):
        self.assertEqual(SignatureChain.of(3, 0).first_signer(), 3)
        with self.assertRaises(EmptyChainError):
            SignatureChain().first_signer()

    def test_sender_first(self):
        self.assertTrue(SignatureChain.of(0, 1).is_sender_first())
        self.assertFalse(SignatureChain.of(1, 0).is_sender_first())
        self.assertFalse(SignatureChain().is_sender_first())

    def test_prefixes(self):
        prefixes = [p.to_list() for p in SignatureChain.of(0, 2, 1).prefixes()]
        self.assertEqual(prefixes, [[0], [0, 2], [0, 2, 1]])

    def test_chains_are_hashable_values(self):
        self.assertEqual(SignatureChain.of(0, 1), SignatureChain.from_list([0, 1]))
        self.assertEqual(len({SignatureChain.of(0, 1), SignatureChain.of(0, 1)}), 1)
        self.assertIn(1, SignatureChain.of(0, 1))
        self.assertEqual(str(SignatureChain.of(0, 1)), "[0, 1]")


class TestMessage(unittest.TestCase):

    def setUp(self):
        self.message = Message(value=7, chain=SignatureChain.of(0, 2), source=2,
                               target=1, round=0)

    def test_message_id(self):
        self.assertEqual(self.message.id, "r0-n2-to-n1-v7")

    def test_default_kind_is_echo(self):
        self.assertIs(self.message.kind, MessageType.ECHO)

    def test_messages_are_immutable(self):
        with self.assertRaises(AttributeError):
            self.message.value = 8

    def test_message_serialization(self):
        """Test message serialization/deserialization"""
        data = self.message.to_dict()
        self.assertEqual(data['signatures'], [0, 2])
        self.assertEqual(data['type'], "ECHO")

        restored = Message.from_json(self.message.to_json())
        self.assertEqual(restored, self.message)
        self.assertEqual(restored.digest(), self.message.digest())

    def test_digest_changes_with_chain(self):
        other = Message(value=7, chain=SignatureChain.of(0, 3), source=2, target=1, round=0)
        self.assertNotEqual(other.digest(), self.message.digest())


if __name__ == "__main__":
    unittest.main(verbosity=2)
