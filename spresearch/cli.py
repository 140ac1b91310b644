from __future__ import annotations

import argparse
import sys
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from .auth.credentials import CredentialCell, LwaTokenClient, TokenRefresher, assume_role
from .config.loader import load_config, load_credentials
from .config.schema import ResearchConfig
from .errors import ResearchError, ConfigError
from .inputs import PromptInputs, StaticInputs, parse_rank_filter
from .io.csv_input import HEADER_SYNONYMS, ingest_csv
from .io.timeutil import make_run_id
from .logging.logger import JsonlLogger
from .pipeline import ResearchPipeline
from .providers.sp_api_provider import SellingPartnerProvider


# ============================================================================
# Helpers
# ============================================================================

def _apply_overrides(cfg: ResearchConfig, args: argparse.Namespace) -> ResearchConfig:
    """Argumentos da linha de comandos têm prioridade sobre o YAML."""
    if getattr(args, "output", None):
        cfg.paths.output_report = args.output
    if getattr(args, "logs_dir", None):
        cfg.paths.logs_dir = args.logs_dir
    if getattr(args, "batch_size", None) is not None:
        if not 1 <= args.batch_size <= 20:
            raise ConfigError(f"--batch-size must be between 1 and 20, got {args.batch_size}")
        cfg.resolver.batch_size = args.batch_size
    if getattr(args, "min_profit", None) is not None:
        try:
            cfg.report.min_profit = Decimal(str(args.min_profit))
        except InvalidOperation as e:
            raise ConfigError(f"Invalid --min-profit: {args.min_profit!r}") from e
    if getattr(args, "direction", None):
        cfg.report.direction = args.direction
    return cfg


def _build_inputs(args: argparse.Namespace) -> Any:
    if not args.input:
        return PromptInputs()
    try:
        rank_filter = parse_rank_filter(args.rank_filter) if args.rank_filter is not None else None
    except ValueError as e:
        raise ConfigError(f"Invalid --rank-filter: {args.rank_filter!r}") from e
    return StaticInputs(
        file_path=args.input,
        ignore_list=args.ignore_companies or "",
        rank_filter=rank_filter,
        ignore_no_rank=bool(args.ignore_no_rank),
    )


# ============================================================================
# run: pipeline completo
# ============================================================================

def cmd_run(args: argparse.Namespace) -> int:
    cfg = _apply_overrides(load_config(args.config), args)
    run_id = args.run_id or make_run_id()
    logger = JsonlLogger(cfg.paths.logs_dir, run_id=run_id, echo=not args.quiet)

    try:
        # inputs primeiro: o prompt interativo não deve esperar pelo token
        inputs = _build_inputs(args)
        inputs.get_file_path()
        inputs.get_ignore_list()
        inputs.get_rank_filter()
        inputs.get_ignore_no_rank()

        creds = load_credentials(dotenv_path=args.env_file)
        logger.log("run.start", config=args.config, output=cfg.paths.output_report, role_arn=creds.role_arn)

        # só verificação de arranque: os pedidos SP-API usam o token LWA, as credenciais
        # temporárias da role não são passadas ao provider
        role = assume_role(
            aws_access_key_id=creds.aws_access_key_id,
            aws_secret_access_key=creds.aws_secret_access_key,
            role_arn=creds.role_arn,
            role_session_name=creds.role_session_name,
            region=cfg.api.region,
        )
        logger.log("role.assumed", role_arn=creds.role_arn, expiration=role.expiration, scope="startup_check")

        cell = CredentialCell()
        token_client = LwaTokenClient(
            refresh_token=creds.refresh_token,
            client_id=creds.client_id,
            client_secret=creds.client_secret,
            token_url=cfg.api.token_url,
            timeout_s=cfg.api.timeout_s,
        )
        refresher = TokenRefresher(
            token_client,
            cell,
            interval_s=cfg.retry.token_refresh_interval_s,
            max_tries=cfg.retry.token_max_tries,
            delay_s=cfg.retry.token_delay_s,
            logger=logger,
        )

        provider = SellingPartnerProvider(
            credentials=cell,
            endpoint=cfg.api.endpoint,
            marketplace_id=cfg.api.marketplace_id,
            timeout_s=cfg.api.timeout_s,
        )

        with refresher:
            result = ResearchPipeline(
                cfg,
                provider,
                inputs,
                logger=logger,
            ).run()

        logger.log("run.done", report=str(result.report.path), rows=result.report.rows, log=str(logger.path))
        return 0

    except ResearchError as e:
        logger.log("run.failed", error_type=type(e).__name__, error=str(e))
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


# ============================================================================
# inspect-headers: só o mapeamento de colunas (offline)
# ============================================================================

def cmd_inspect_headers(args: argparse.Namespace) -> int:
    try:
        res = ingest_csv(args.input)
    except ResearchError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    mapped: Dict[str, int] = {fld: idx for idx, fld in res.columns.items()}
    lines: List[str] = []
    for fld in HEADER_SYNONYMS:
        idx: Optional[int] = mapped.get(fld)
        lines.append(f"{fld:<10} {'column ' + str(idx) if idx is not None else '(not found)'}")
    lines.append(f"rows={res.rows_read} records={len(res.records)} blank={res.skipped_blank}")
    print("\n".join(lines))
    return 0


# ============================================================================
# CLI entrypoint
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="spresearch")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("run", help="Enrich a product CSV via the Selling Partner API and write Research.csv")
    r.add_argument("--config", default=None)
    r.add_argument("--input", default=None, help="CSV path; prompts interactively when omitted")
    r.add_argument("--ignore-companies", default=None, help="comma-separated, case-insensitive")
    r.add_argument("--rank-filter", default=None)
    r.add_argument("--ignore-no-rank", action="store_true")
    r.add_argument("--min-profit", default=None)
    r.add_argument("--direction", choices=["at_least", "at_most"], default=None)
    r.add_argument("--output", default=None)
    r.add_argument("--logs-dir", default=None)
    r.add_argument("--batch-size", type=int, default=None)
    r.add_argument("--env-file", default=None)
    r.add_argument("--run-id", default=None)
    r.add_argument("--quiet", action="store_true")
    r.set_defaults(func=cmd_run)

    h = sub.add_parser("inspect-headers", help="Show which CSV columns map to which fields")
    h.add_argument("--input", required=True)
    h.set_defaults(func=cmd_inspect_headers)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except ResearchError as e:
        # config inválida antes do logger existir
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
