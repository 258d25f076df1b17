"""
pool-api command line

Usage:
    pool-api addresses 0xCONTRACT
    pool-api status 0xCONTRACT
    pool-api list bond 0xCONTRACT --max-entries 10
    pool-api list policy 0xCONTRACT --owner 0xOWNER
    pool-api detail bond 0xCONTRACT --idx 3
    pool-api logs adjustor 0xCONTRACT --owner 0xOWNER --csv adjustor_logs.csv
    pool-api bank-logs 0xCONTRACT --account-type FUNDING_ACCOUNT --success positive
    pool-api notifications 0xCONTRACT --from-time 1700000000
    pool-api receipt 0xTXHASH --max-wait 60

Results are printed as JSON; log queries can also be exported to CSV.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

import pandas as pd

from .errors import LedgerApiError
from .logging_config import setup_ledger_debug_logging, setup_logging
from .services.decoders.base import AccountType, Entity, EventLogList, SuccessFilter

logger = logging.getLogger(__name__)

LIST_ENTITIES = ['bond', 'policy', 'settlement', 'adjustor']
OWNED_ENTITIES = ['bond', 'policy', 'adjustor']


def _add_block_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--from-block', type=int, default=0, help='First block (default: lookback window or genesis)')
    parser.add_argument('--to-block', type=int, default=0, help='Last block (default: latest)')
    parser.add_argument('--csv', type=str, help='Export the logs to this CSV file')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='pool-api', description='Query insurance pool ecosystem contracts')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--url', type=str, help='Web3 endpoint (default: WEB3_URL_ENDPOINT)')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('addresses', help='Contract addresses of an ecosystem')
    p.add_argument('contract_adr')

    p = sub.add_parser('status', help='Pool status and list metadata')
    p.add_argument('contract_adr')

    p = sub.add_parser('list', help='Page of bonds, policies, settlements or adjustors')
    p.add_argument('entity', choices=LIST_ENTITIES)
    p.add_argument('contract_adr')
    p.add_argument('--owner', type=str)
    p.add_argument('--from-idx', type=int, default=0)
    p.add_argument('--max-entries', type=int, default=0)

    p = sub.add_parser('detail', help='Entity detail with its event history')
    p.add_argument('entity', choices=LIST_ENTITIES)
    p.add_argument('contract_adr')
    p.add_argument('--hash', dest='entity_hash', type=str)
    p.add_argument('--idx', type=int, default=0)

    p = sub.add_parser('logs', help='Bond, policy or adjustor event logs')
    p.add_argument('entity', choices=OWNED_ENTITIES + ['settlement'])
    p.add_argument('contract_adr')
    p.add_argument('--hash', dest='entity_hash', type=str, help='Entity hash (settlement hash for settlements)')
    p.add_argument('--owner', type=str)
    p.add_argument('--adjustor-hash', type=str, help='Settlement logs only')
    p.add_argument('--info', type=str)
    _add_block_range(p)

    p = sub.add_parser('bank-logs', help='Bank event logs of one account')
    p.add_argument('contract_adr')
    p.add_argument('--account-type', choices=[a.name for a in AccountType], default=AccountType.PREMIUM_ACCOUNT.name)
    p.add_argument('--reference', type=str, help='Internal reference hash')
    p.add_argument('--success', choices=[s.value for s in SuccessFilter], default=SuccessFilter.ALL.value)
    _add_block_range(p)

    p = sub.add_parser('pool-logs', help='Pool event logs')
    p.add_argument('contract_adr')
    p.add_argument('--subject', type=str)
    p.add_argument('--day', type=int, default=0)
    p.add_argument('--value', type=int, default=0)
    _add_block_range(p)

    p = sub.add_parser('trust-logs', help='Trust event logs')
    p.add_argument('contract_adr')
    p.add_argument('--subject', type=str)
    p.add_argument('--address', type=str)
    p.add_argument('--info', type=str)
    _add_block_range(p)

    p = sub.add_parser('payment-advice', help='Outstanding bank payment advice')
    p.add_argument('contract_adr')

    p = sub.add_parser('notifications', help='Timer notifications (max 24h window)')
    p.add_argument('contract_adr')
    p.add_argument('--from-time', type=int, default=0)
    p.add_argument('--to-time', type=int, default=0)

    p = sub.add_parser('receipt', help='Wait for and show a transaction receipt')
    p.add_argument('tx_hash')
    p.add_argument('--max-wait', type=int, default=0)

    return parser


def to_json(result) -> object:
    if isinstance(result, list):
        return [to_json(item) for item in result]
    if hasattr(result, 'to_dict'):
        return result.to_dict()
    return result


def export_logs_csv(event_logs: EventLogList, path: str) -> int:
    """Write decoded logs to CSV, one row per log. Returns the row count."""
    frame = pd.DataFrame(event_logs.records())
    frame.to_csv(path, index=False)
    return len(frame)


def run(args: argparse.Namespace, service) -> object:
    """Dispatch one parsed command to the service."""
    command = args.command
    if command == 'addresses':
        return service.get_ecosystem_contract_addresses(args.contract_adr)
    if command == 'status':
        return service.get_ecosystem_status(args.contract_adr)
    if command == 'list':
        return service.get_list(Entity(args.entity), args.contract_adr, args.owner, args.from_idx, args.max_entries)
    if command == 'detail':
        return service.get_detail(Entity(args.entity), args.contract_adr, args.entity_hash, args.idx)
    if command == 'logs':
        if args.entity == 'settlement':
            return service.get_settlement_logs(args.contract_adr, args.entity_hash, args.adjustor_hash,
                                               args.info, args.from_block, args.to_block)
        return service.get_logs(Entity(args.entity), args.contract_adr, args.entity_hash, args.owner,
                                args.info, args.from_block, args.to_block)
    if command == 'bank-logs':
        return service.get_bank_logs(args.contract_adr, AccountType[args.account_type], args.reference,
                                     SuccessFilter(args.success), args.from_block, args.to_block)
    if command == 'pool-logs':
        return service.get_pool_logs(args.contract_adr, args.subject, args.day, args.value,
                                     args.from_block, args.to_block)
    if command == 'trust-logs':
        return service.get_trust_logs(args.contract_adr, args.subject, args.address, args.info,
                                      args.from_block, args.to_block)
    if command == 'payment-advice':
        return service.get_payment_advice_list(args.contract_adr)
    if command == 'notifications':
        return service.get_timer_notifications(args.contract_adr, args.from_time, args.to_time)
    if command == 'receipt':
        return service.get_receipt(args.tx_hash, args.max_wait)
    raise ValueError(f"Unknown command {command}")


def main(argv: Optional[List[str]] = None, service=None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    if args.verbose:
        setup_ledger_debug_logging()

    if service is None:
        from .services.ledger_client import Web3LedgerClient
        from .services.pool_service import PoolLedgerService
        service = PoolLedgerService(Web3LedgerClient(args.url))

    try:
        result = run(args, service)
    except LedgerApiError as e:
        logger.error(f"{e.title}: {e.message}")
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1

    csv_path = getattr(args, 'csv', None)
    if csv_path and isinstance(result, EventLogList):
        rows = export_logs_csv(result, csv_path)
        logger.info(f"Exported {rows} logs to {csv_path}")

    print(json.dumps(to_json(result), indent=2, default=str))
    return 0


if __name__ == '__main__':
    sys.exit(main())
