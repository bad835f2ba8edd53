from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from .models import PriceChange, SizeChange, SwitchResult


@dataclass
class SwitchReport:
    timestamp: str
    list_id: str
    previous_store: str | None
    new_store: str
    items_updated: int
    manual_overrides_preserved: int
    previous_total: float
    new_total: float
    savings: float
    size_changes: list[SizeChange]
    price_changes: list[PriceChange]

    def summary_text(self) -> str:
        lines = [
            f"Switch: {self.timestamp}  list={self.list_id}",
            f"Store: {self.previous_store or '-'} -> {self.new_store}",
            f"Updated: {self.items_updated}  Overrides kept: {self.manual_overrides_preserved}  "
            f"Total: £{self.previous_total:.2f} -> £{self.new_total:.2f}  Savings: £{self.savings:.2f}",
        ]
        if self.size_changes:
            lines.append("")
            lines.append("Size changes:")
            for i, c in enumerate(self.size_changes, 1):
                tag = "" if c.is_exact else " (closest)"
                lines.append(f"  {i}. {c.item_name}: {c.old_size or '-'} -> {c.new_size}{tag}")
        if self.price_changes:
            lines.append("")
            lines.append("Price changes:")
            for i, c in enumerate(self.price_changes, 1):
                old = f"£{c.old_price:.2f}" if c.old_price is not None else "-"
                lines.append(f"  {i}. {c.item_name}: {old} -> £{c.new_price:.2f}")
        return "\n".join(lines)

    def write_json(self, path: str = "artifacts/switch_report.json") -> str:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(asdict(self), indent=2))
        return str(out)


def build_switch_report(result: SwitchResult, *, list_id: str) -> SwitchReport:
    return SwitchReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        list_id=list_id,
        previous_store=result.previous_store,
        new_store=result.new_store,
        items_updated=result.items_updated,
        manual_overrides_preserved=result.manual_overrides_preserved,
        previous_total=result.previous_total,
        new_total=result.new_total,
        savings=result.savings,
        size_changes=result.size_changes,
        price_changes=result.price_changes,
    )
