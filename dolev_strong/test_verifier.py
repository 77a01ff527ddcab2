# dolev_strong/test_verifier.py
import unittest
from types import MappingProxyType

from dolev_strong.config import RunParams
from dolev_strong.consensus import ProtocolEngine
from dolev_strong.exceptions import IncompleteRunError
from dolev_strong.node import NodeSnapshot
from dolev_strong.verifier import PropertyStatus, PropertyVerifier, format_decision, verify


def node(node_id, decision=None, byzantine=False, decided=True):
    return NodeSnapshot(node_id=node_id, is_byzantine=byzantine,
                        convinced=MappingProxyType({}), inbox=(),
                        decision=decision, decided=decided)


class TestPropertyVerifier(unittest.TestCase):

    def setUp(self):
        self.verifier = PropertyVerifier()
        self.params = RunParams(n=4, f=1, sender_value=7, byzantine_ids={3})

    def test_all_properties_satisfied(self):
        nodes = [node(0, 7), node(1, 7), node(2, 7), node(3, 1, byzantine=True)]
        report = self.verifier.check(nodes, self.params)
        self.assertTrue(report.all_satisfied())
        self.assertEqual(report.agreement.evidence['histogram'], {7: 3})
        self.assertEqual(report.agreement.evidence['honest_parties'], [0, 1, 2])
        self.assertEqual(report.validity.evidence['mismatching'], [])

    def test_agreement_violated(self):
        nodes = [node(0, 7), node(1, 7), node(2, 8), node(3, byzantine=True)]
        report = self.verifier.check(nodes, self.params)
        self.assertIs(report.agreement.status, PropertyStatus.VIOLATED)
        self.assertEqual(report.agreement.evidence['distinct_values'], [7, 8])
        self.assertIs(report.validity.status, PropertyStatus.VIOLATED)
        self.assertEqual(report.validity.evidence['mismatching'], [2])
        self.assertFalse(report.all_satisfied())

    def test_value_and_bottom_still_agree(self):
        """Some honest parties on a value, others on bottom, is not a disagreement"""
        params = RunParams(n=4, f=1, sender_value=7, byzantine_ids={0})
        nodes = [node(0, 5, byzantine=True), node(1, 7), node(2), node(3)]
        report = self.verifier.check(nodes, params)
        self.assertIs(report.agreement.status, PropertyStatus.SATISFIED)
        self.assertEqual(report.agreement.evidence['histogram'], {7: 1, None: 2})
        self.assertIs(report.validity.status, PropertyStatus.NOT_APPLICABLE)

    def test_validity_bottom_is_mismatch(self):
        nodes = [node(0, 7), node(1), node(2, 7), node(3, byzantine=True)]
        report = self.verifier.check(nodes, self.params)
        self.assertIs(report.validity.status, PropertyStatus.VIOLATED)
        self.assertEqual(report.validity.evidence['mismatching'], [1])

    def test_pending_before_finalize(self):
        nodes = [node(i, decided=False) for i in range(4)]
        report = self.verifier.check(nodes, self.params, finalized=False)
        for result in (report.termination, report.agreement, report.validity):
            self.assertIs(result.status, PropertyStatus.PENDING)

    def test_empty_and_singleton_honest_sets(self):
        params = RunParams(n=2, f=2, sender_value=7, byzantine_ids={0, 1})
        report = self.verifier.check([node(0, 7, True), node(1, 8, True)], params)
        self.assertIs(report.agreement.status, PropertyStatus.SATISFIED)
        self.assertEqual(report.agreement.evidence['honest_parties'], [])

        params = RunParams(n=2, f=1, sender_value=7, byzantine_ids={1})
        report = self.verifier.check([node(0, 7), node(1, 3, True)], params)
        self.assertTrue(report.all_satisfied())

    def test_incomplete_snapshots(self):
        with self.assertRaises(IncompleteRunError):
            self.verifier.check([node(0, 7)], self.params)
        with self.assertRaises(IncompleteRunError):
            self.verifier.check([node(0, 7), node(1, 7), node(2, decided=False),
                                 node(3, byzantine=True)], self.params)
        with self.assertRaises(IncompleteRunError):
            verify(None)

    def test_resilience_advisory(self):
        self.assertEqual(PropertyVerifier.resilience(RunParams(n=2, f=2, sender_value=1, byzantine_ids={0, 1})),
                         {'min_nodes': 3, 'recommended_nodes': 5, 'has_enough_nodes': False})
        self.assertEqual(PropertyVerifier.resilience(self.params),
                         {'min_nodes': 2, 'recommended_nodes': 2, 'has_enough_nodes': True})

    def test_report_to_dict(self):
        nodes = [node(0, 7), node(1, 7), node(2, 7), node(3, byzantine=True)]
        data = self.verifier.check(nodes, self.params).to_dict()
        self.assertEqual(data['termination']['status'], "satisfied")
        self.assertEqual(data['validity']['evidence']['expected'], 7)

    def test_format_decision(self):
        self.assertEqual(format_decision(None), "⊥")
        self.assertEqual(format_decision(4), "4")


class TestVerifyLiveRun(unittest.TestCase):

    def test_reevaluated_as_run_progresses(self):
        engine = ProtocolEngine()
        engine.initialize(RunParams(n=3, f=1, sender_value=7, byzantine_ids={1}))
        self.assertIs(verify(engine.snapshot()).termination.status, PropertyStatus.PENDING)

        engine.advance_round()
        self.assertIs(verify(engine.snapshot()).agreement.status, PropertyStatus.PENDING)

        engine.advance_round()
        report = verify(engine.snapshot())
        self.assertIs(report.termination.status, PropertyStatus.SATISFIED)
        self.assertIs(report.validity.status, PropertyStatus.SATISFIED)


if __name__ == "__main__":
    unittest.main(verbosity=2)
