from dataclasses import dataclass


WORK_MODES = ("bits", "target")
TIE_BREAKS = ("first", "hash")


@dataclass(frozen=True)
class ScanConfig:
    # Records pulled from the input per read call.
    read_batch: int = 4096
    # "bits" sums the raw compact field (source-compatible output).
    # "target" sums 2**256 // (target + 1) like a real node would.
    work_mode: str = "bits"
    # "first" keeps the earliest tip on equal work, "hash" picks the
    # smallest display hash so the result does not depend on input order.
    tie_break: str = "first"
    reject_duplicates: bool = False

    def validate(self) -> None:
        if self.work_mode not in WORK_MODES:
            raise ValueError(f"Unknown work mode '{self.work_mode}' (expected one of: {', '.join(WORK_MODES)})")
        if self.tie_break not in TIE_BREAKS:
            raise ValueError(f"Unknown tie-break '{self.tie_break}' (expected one of: {', '.join(TIE_BREAKS)})")
        if self.read_batch <= 0:
            raise ValueError("read_batch must be positive")


CONFIG = ScanConfig()
