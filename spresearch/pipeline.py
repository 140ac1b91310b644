from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from .config.schema import ResearchConfig
from .enrich.fees import estimate_fees
from .enrich.pricing import fetch_offer_prices
from .enrich.profit import calculate_profits
from .enrich.resolver import resolve_identifiers
from .enrich.retry import RetryPolicy
from .inputs import RunInputs
from .io.csv_input import ingest_csv, parse_ignore_list
from .io.report import ProfitFilter, ReportResult, write_report
from .logging.logger import NullLogger
from .models import Record


@dataclass
class PipelineResult:
    records: List[Record]
    report: ReportResult
    stats: Dict[str, Any] = field(default_factory=dict)


class ResearchPipeline:
    """
    CSV -> catalog (ASIN + rank) -> offers -> fees -> profit -> Research.csv.
    A lista de registos é criada uma vez e mutada in-place por cada etapa.
    """
    def __init__(
        self,
        cfg: ResearchConfig,
        provider: Any,
        inputs: RunInputs,
        *,
        logger: Any = None,
        sleep: Callable[[float], None] = time.sleep,
        profit_filter: Optional[ProfitFilter] = None,
        output_path: Optional[str] = None,
    ):
        self.cfg = cfg
        self.provider = provider
        self.inputs = inputs
        self.logger = logger or NullLogger()
        self.sleep = sleep
        self.profit_filter = profit_filter or ProfitFilter(
            threshold=Decimal(cfg.report.min_profit),
            direction=cfg.report.direction,
        )
        self.output_path = output_path or cfg.paths.output_report
        self.retry = RetryPolicy(max_tries=cfg.retry.max_tries, delay_s=cfg.retry.delay_s)
        self.records: List[Record] = []

    def run(self) -> PipelineResult:
        stats: Dict[str, Any] = {}
        file_path = self.inputs.get_file_path()
        ignore = parse_ignore_list(self.inputs.get_ignore_list())
        rank_filter = self.inputs.get_rank_filter()
        ignore_no_rank = self.inputs.get_ignore_no_rank()

        self.logger.log(
            "pipeline.start",
            input=file_path,
            ignore_companies=sorted(ignore),
            rank_filter=rank_filter,
            ignore_no_rank=ignore_no_rank,
            min_profit=self.profit_filter.threshold,
            direction=self.profit_filter.direction,
        )

        # 1) ingest
        ing = ingest_csv(file_path, ignore_companies=ignore)
        self.records = ing.records
        stats["ingest"] = {
            "records": len(ing.records),
            "rows_read": ing.rows_read,
            "skipped_ignored": ing.skipped_ignored,
            "skipped_blank": ing.skipped_blank,
        }
        self.logger.log(
            "ingest.done",
            columns={str(k): v for k, v in sorted(ing.columns.items())},
            missing_fields=ing.missing_fields,
            **stats["ingest"],
        )

        # 2) ASIN + rank
        rs = resolve_identifiers(
            self.records,
            self.provider,
            batch_size=self.cfg.resolver.batch_size,
            rank_filter=rank_filter,
            ignore_no_rank=ignore_no_rank,
            retry=self.retry,
            pace_s=self.cfg.pacing.catalog_s,
            sleep=self.sleep,
            logger=self.logger,
        )
        stats["resolve"] = rs.to_dict()
        self.logger.log("resolve.done", **stats["resolve"])

        # 3) preço mais baixo
        ps = fetch_offer_prices(
            self.records,
            self.provider,
            retry=self.retry,
            pace_s=self.cfg.pacing.pricing_s,
            sleep=self.sleep,
            logger=self.logger,
        )
        stats["prices"] = ps.to_dict()
        self.logger.log("prices.done", **stats["prices"])

        # 4) fees
        fs = estimate_fees(
            self.records,
            self.provider,
            retry=self.retry,
            pace_s=self.cfg.pacing.fees_s,
            sleep=self.sleep,
            logger=self.logger,
        )
        stats["fees"] = fs.to_dict()
        self.logger.log("fees.done", **stats["fees"])

        # 5) profit
        calculate_profits(self.records)
        self.logger.log("profit.done", records=len(self.records))

        # 6) report
        report = write_report(
            self.records,
            self.output_path,
            self.profit_filter,
            include_company=self.cfg.report.include_company,
            include_name=self.cfg.report.include_name,
        )
        stats["report"] = {"path": str(report.path), "rows": report.rows, "considered": report.considered}
        self.logger.log("report.written", **stats["report"])

        self.logger.log("pipeline.done")
        return PipelineResult(records=self.records, report=report, stats=stats)
