# stdlib
import json
from pathlib import Path
from typing import Any, Optional, Sequence
# projectlib
from energy_forecasting.evaluation.compare import (
    EvaluationSummary,
    ResultRecord,
)
from energy_forecasting.utils.paths import validate_address
from energy_forecasting.utils.typing import Address

def write_results(
        records: Sequence[ResultRecord],
        destination: Address,
        *,
        summary: Optional[EvaluationSummary] = None,
    ) -> Path:
    """
    Write forecast result records to a JSON document.

    The document is a list of records, or ``{"summary": ...,
    "records": [...]}`` when ``summary`` is given. Infinite error
    percentages are written as the ``Infinity`` token and missing
    values as ``null``. An existing file is never overwritten: a
    timestamped sibling name is used instead.

    Parameters
    ----------
    records : Sequence[ResultRecord]
        Finished result records, in step order.
    destination : Address
        Target ``.json`` file. Missing parent directories are created.
    summary : EvaluationSummary, optional
        Aggregate statistics stored next to the records.

    Returns
    -------
    pathlib.Path
        Path actually written.
    """
    path = validate_address(
        Path(destination).with_suffix(".json"), mode="w", mkdir=True
    )
    body = [r.to_dict() for r in records]
    document: Any = body
    if summary is not None:
        document = {
            "summary": summary.to_dict(),
            "records": body,
        }
    with open(path, "w", encoding="utf-8") as file:
        json.dump(document, file, indent=2)
    return path
