"""
Continuous export model.
"""

from __future__ import annotations

from typing import List, Optional

from .base import BaseSchemaModel
from .scripts import Script


class ContinuousExport(BaseSchemaModel):
    """A continuous export of a query into an external table."""

    external_table: str
    forced_latency_in_minutes: int = 0
    interval_between_runs: int = 0
    size_limit: int = 0
    distributed: bool = False
    managed_identity: Optional[str] = None
    query: str = ""

    def create_scripts(self, name: str, is_new: bool = False) -> List[Script]:
        options = [
            f"forcedLatency={self.forced_latency_in_minutes}m",
            f"intervalBetweenRuns={self.interval_between_runs}m",
            f"sizeLimit={self.size_limit}",
            f"distributed={str(self.distributed).lower()}",
        ]
        if self.managed_identity:
            options.append(f"managedIdentity='{self.managed_identity}'")
        return [Script(
            "ContinuousExport", 120,
            f".create-or-alter continuous-export {name} to table {self.external_table} "
            f"with ({', '.join(options)}) <| {self.query}",
        )]
