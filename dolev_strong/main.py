# dolev_strong/main.py
import argparse
import sys
from typing import List, Optional

from .config import SimulatorConfig, load_config, setup_logging
from .consensus import ProtocolEngine
from .exceptions import DolevStrongError, InvalidConfigError
from .verifier import format_decision, verify


class SimulationRunner:
    """Drives one engine run and prints its statistics"""

    def __init__(self, config: SimulatorConfig):
        self.config = config
        self.engine = ProtocolEngine(config=config)

    def run(self):
        handle = self.engine.initialize()
        params = handle.params

        print(f"\n{'='*60}")
        print(f"Dolev-Strong run: n={params.n}, f={params.f}, V*={params.sender_value}")
        print(f"{'='*60}")
        print(f"Byzantine nodes: {sorted(params.byzantine_ids) or 'None'}")
        if handle.repair:
            print(f"Note: {handle.repair.describe()}")
        print(f"Round 0: {handle.initial_messages} initial messages")

        while not self.engine.finalized:
            summary = self.engine.advance_round()
            convinced = ", ".join(f"node {node}: {list(values)}"
                                  for node, values in sorted(summary.newly_convinced.items()))
            print(f"Round {summary.round}: {summary.echo_count} echoes, "
                  f"newly convinced [{convinced or 'none'}]"
                  + (f", {summary.forgeries_rejected} forgeries dropped"
                     if summary.forgeries_rejected else ""))

        self.print_statistics()
        return verify(self.engine.snapshot())

    def print_statistics(self):
        """Print decisions, properties and network statistics"""
        snapshot = self.engine.snapshot()
        report = verify(snapshot)

        print("\n" + "="*60)
        print("DECISIONS")
        print("="*60)
        for node in snapshot.nodes:
            role = "Byzantine" if node.is_byzantine else "honest"
            stats = self.engine.nodes[node.node_id].get_stats()
            print(f"  Node {node.node_id} ({role}): convinced of {sorted(node.convinced)}, "
                  f"decided {format_decision(node.decision)}")
            print(f"    Messages: sent={stats['messages_sent']}, received={stats['messages_received']}")

        print("\nProperties:")
        for result in (report.termination, report.agreement, report.validity):
            mark = "✓" if result.passed else "✗"
            print(f"  {mark} {result.name}: {result.status.value}")
        histogram = report.agreement.evidence.get('histogram', {})
        for decision, count in histogram.items():
            print(f"    Value {format_decision(decision)}: {count} honest nodes")
        if not report.resilience.get('has_enough_nodes', True):
            print(f"  Warning: at least {report.resilience['min_nodes']} nodes recommended")

        stats = self.engine.get_stats()
        print(f"\nNetwork Statistics:")
        print(f"  Total messages: {stats['total_messages']}")
        print(f"  Messages per round: {stats['messages_per_round']}")
        print(f"  Forgeries dropped: {stats['forgeries_rejected']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Dolev-Strong Byzantine broadcast simulator")
    parser.add_argument("--config", help="YAML or JSON configuration file")
    parser.add_argument("--nodes", type=int, help="number of parties n")
    parser.add_argument("--faults", type=int, help="number of Byzantine parties f")
    parser.add_argument("--value", type=int, help="sender's broadcast value")
    parser.add_argument("--byzantine", type=int, nargs="*", help="Byzantine party ids")
    parser.add_argument("--sender-strategy", help="strategy for a Byzantine sender")
    parser.add_argument("--party-strategy", help="strategy for other Byzantine parties")
    parser.add_argument("--seed", type=int, help="seed for Byzantine tie-breaking")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    return parser


def config_from_args(args) -> SimulatorConfig:
    config = load_config(args.config)
    protocol = config.protocol
    if args.nodes is not None:
        protocol.total_nodes = args.nodes
    if args.faults is not None:
        protocol.fault_tolerance = args.faults
    if args.value is not None:
        protocol.sender_value = args.value
    if args.byzantine is not None:
        protocol.byzantine_ids = list(args.byzantine)
    if args.sender_strategy:
        config.adversary.sender_strategy = args.sender_strategy
    if args.party_strategy:
        config.adversary.party_strategy = args.party_strategy
    if args.seed is not None:
        config.random_seed = args.seed
    if args.log_level:
        config.logging.level = args.log_level
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
        errors = config.validate()
        if errors:
            for error in errors:
                print(f"Configuration error: {error}", file=sys.stderr)
            return 2
        setup_logging(config.logging)
        report = SimulationRunner(config).run()
    except InvalidConfigError as e:
        for error in e.errors:
            print(f"Configuration error: {error}", file=sys.stderr)
        return 2
    except DolevStrongError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0 if report.all_satisfied() else 3


if __name__ == "__main__":
    sys.exit(main())
