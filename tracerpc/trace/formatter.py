"""
Trace formatter: indexed rows → Parity-style trace objects.

Call and create traces are distinct record shapes. A create action carries
``init`` and never ``to``/``input``; a create result may carry the deployed
contract ``address``. ``create2`` rows are reported as ``type: "create"``
while ``action.callType`` keeps the literal ``create2``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from .normalize import normalize_address, normalize_bytes, normalize_hex, parse_trace_address
from .types import TraceRow

CREATE_CALL_TYPES = ("create", "create2")


@dataclass(frozen=True)
class CallAction:
    call_type: str
    from_address: Optional[str]
    gas: str
    value: str
    to: Optional[str]
    input: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "callType": self.call_type,
            "from": self.from_address,
            "gas": self.gas,
            "value": self.value,
            "to": self.to,
            "input": self.input,
        }


@dataclass(frozen=True)
class CreateAction:
    call_type: str
    from_address: Optional[str]
    gas: str
    value: str
    init: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "callType": self.call_type,
            "from": self.from_address,
            "gas": self.gas,
            "value": self.value,
            "init": self.init,
        }


@dataclass(frozen=True)
class CallResult:
    gas_used: str
    output: str

    def to_dict(self) -> Dict[str, Any]:
        return {"gasUsed": self.gas_used, "output": self.output}


@dataclass(frozen=True)
class CreateResult:
    gas_used: str
    output: str
    address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"gasUsed": self.gas_used, "output": self.output}
        if self.address:
            result["address"] = self.address
        return result


@dataclass(frozen=True)
class TraceObject:
    action: Union[CallAction, CreateAction]
    result: Union[CallResult, CreateResult]
    block_hash: str
    block_number: int
    transaction_hash: str
    transaction_position: Any
    trace_address: List[int] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def type(self) -> str:
        return "create" if isinstance(self.action, CreateAction) else "call"

    def to_dict(self) -> Dict[str, Any]:
        trace = {
            "action": self.action.to_dict(),
            "blockHash": self.block_hash,
            "blockNumber": self.block_number,
            "result": self.result.to_dict(),
            "subtraces": 0,
            "traceAddress": list(self.trace_address),
            "transactionHash": self.transaction_hash,
            "transactionPosition": self.transaction_position,
            "type": self.type,
        }
        if self.error:
            trace["error"] = self.error
        return trace


def _block_number(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def format_trace_row(row: TraceRow) -> TraceObject:
    """Render one row. Pure: the same row always yields an equal object."""
    call_type = row.call_type or "call"
    from_address = normalize_address(row.from_address)
    to_address = normalize_address(row.to_address)
    gas = normalize_hex(row.gas)
    value = normalize_hex(row.value)
    gas_used = normalize_hex(row.gas_used)
    output = normalize_bytes(row.output)

    if call_type in CREATE_CALL_TYPES:
        action = CreateAction(
            call_type=call_type,
            from_address=from_address,
            gas=gas,
            value=value,
            init=normalize_bytes(row.input),
        )
        result = CreateResult(gas_used=gas_used, output=output, address=to_address)
    else:
        action = CallAction(
            call_type=call_type,
            from_address=from_address,
            gas=gas,
            value=value,
            to=to_address,
            input=normalize_bytes(row.input),
        )
        result = CallResult(gas_used=gas_used, output=output)

    return TraceObject(
        action=action,
        result=result,
        block_hash=normalize_hex(row.block_hash, empty="0x"),
        block_number=_block_number(row.block_number),
        transaction_hash=normalize_hex(row.transaction_hash, empty="0x"),
        transaction_position=row.transaction_position,
        trace_address=parse_trace_address(row.trace_address),
        error=row.error or None,
    )


def format_traces(rows: Iterable[TraceRow]) -> List[Dict[str, Any]]:
    """Render rows in the order the store returned them."""
    return [format_trace_row(row).to_dict() for row in rows]
