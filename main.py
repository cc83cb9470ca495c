import asyncio
import logging
import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List

from config.config import SystemConfig, load_config
from ledger.wallet import LocalSigner
from lifecycle.status_tracker import TransactionStatus
from private_voting_system import PrivateVotingSystem
from utils.utils import setup_logging, save_results

logger = logging.getLogger(__name__)

DEV_ACCOUNT = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


def print_status(status: TransactionStatus):
    if status.visible:
        print(f"  [{status.status.value}] {status.message}")


async def run_demo(config: SystemConfig, num_votes: int = 3) -> bool:
    print("=" * 80)
    print("PRIVATE VOTING CLIENT - DEVELOPMENT CHAIN DEMONSTRATION")
    print("   Client-side encryption + proof-carrying public decryption")
    print("=" * 80)

    system = PrivateVotingSystem(config)
    system.status.subscribe(print_status)

    print(f"\nConnecting wallet {DEV_ACCOUNT}...")
    if not await system.connect_wallet(LocalSigner(DEV_ACCOUNT)):
        print("Encryption session could not be initialized")
        return False

    await system.controller.check_availability()

    print(f"\nCreating {num_votes} encrypted votes...")
    created: List[str] = []
    for i in range(num_votes):
        vote_id = await system.controller.create(
            f"Favourite season #{i + 1}", "Spring", "Summer", "Autumn",
            value=i + 1)
        if vote_id is None:
            print(f"  Vote {i + 1} failed: {system.controller.last_error}")
            continue
        created.append(vote_id)

    print("\nVotes on the registry:")
    for record in system.controller.votes:
        print(f"  {record.id}  {record.title!r}  options={list(record.options)}"
              f"  verified={record.is_verified}")

    print("\nDecrypting votes...")
    results: Dict[str, Any] = {}
    for vote_id in created:
        value = await system.controller.decrypt(vote_id)
        results[vote_id] = value
        print(f"  {vote_id}: {value}")

    # Second pass hits the verified short-circuit
    for vote_id in created[:1]:
        await system.controller.decrypt(vote_id)

    stats = system.repository.stats()
    print(f"\nTotal votes: {stats.total_votes}  Verified: {stats.verified_votes}"
          f"  Today: {stats.today_votes}")

    report_path = config.results_dir / "demo_report.json"
    save_results({
        'decrypted': results,
        'votes': list(system.controller.votes),
        'system_metrics': system.get_system_metrics(),
    }, report_path)

    perf_path = config.results_dir / "performance_report.txt"
    with open(perf_path, "w") as f:
        f.write(system.performance_report())

    print(f"\nFull results saved to: {report_path}")
    print(f"Performance report: {perf_path}")

    system.disconnect_wallet()
    return len(results) == num_votes and all(v is not None for v in results.values())


def main():
    parser = argparse.ArgumentParser(
        description='Private Voting Client')
    parser.add_argument('--votes', type=int, default=3,
                        help='Number of votes to create')
    parser.add_argument('--config', type=str,
                        default='config.yaml', help='Config file path')
    parser.add_argument('--block-time', type=float, default=None,
                        help='Override the development chain block time')

    args = parser.parse_args()

    config = load_config(Path(args.config))
    if args.block_time is not None:
        config.ledger_config.block_time = args.block_time

    setup_logging(config.log_level, config.log_dir)
    config.results_dir.mkdir(parents=True, exist_ok=True)

    success = asyncio.run(run_demo(config, args.votes))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
