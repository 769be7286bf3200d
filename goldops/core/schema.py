from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, constr, model_validator

DateStr = constr(pattern=r"^\d{4}-\d{2}-\d{2}$")

OrderStatus = Literal["pending", "paused", "completed"]
LedgerKind = Literal["normal", "transfer_out", "transfer_in"]
TransferStatus = Literal["pending", "accepted", "rejected"]
TransferKind = Literal["window", "machine"]


class TenantSettings(BaseModel):
    employee_cost_rate: Decimal = Decimal("12")
    order_unit_price: Decimal = Decimal("60")
    default_fee_percent: Decimal = Decimal("7")
    initial_capital: Decimal = Decimal("10000")


class Machine(BaseModel):
    id: str
    tenant_id: str
    phone: str
    platform: str
    login_type: str = "code"
    login_password: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.phone} ({self.platform})"


class Window(BaseModel):
    id: str
    tenant_id: str
    machine_id: str
    window_number: str
    gold_balance: int = Field(ge=0)
    assigned_staff_id: str | None = None


class LedgerEntry(BaseModel):
    """Append-only acquisition record; ``amount`` is in wan, ``cost`` in CNY."""

    id: str
    tenant_id: str
    date: DateStr
    amount: Decimal
    cost: Decimal
    kind: LedgerKind = "normal"
    note: str | None = None
    transfer_id: str | None = None

    @model_validator(mode="after")
    def _check_direction(self) -> "LedgerEntry":
        if self.kind == "transfer_out":
            if self.amount > 0 or self.cost > 0:
                raise ValueError("transfer_out entries must carry non-positive amount and cost")
        elif self.amount < 0 or self.cost < 0:
            raise ValueError(f"{self.kind} entries must carry non-negative amount and cost")
        return self


class WindowSnapshot(BaseModel):
    window_id: str
    machine_id: str
    window_number: str
    machine_name: str
    start_balance: int


class PartialResult(BaseModel):
    window_id: str
    window_number: str
    machine_name: str
    staff_id: str
    staff_name: str
    start_balance: int
    end_balance: int
    consumed: int
    released_at: str


class WindowResult(BaseModel):
    window_id: str
    start_balance: int
    end_balance: int
    consumed: int


class ExecutionRecord(BaseModel):
    staff_id: str
    staff_name: str
    amount: Decimal = Decimal("0")
    start_time: str
    end_time: str | None = None


class Order(BaseModel):
    id: str
    tenant_id: str
    date: DateStr
    staff_id: str
    amount: Decimal = Field(gt=0)
    unit_price: Decimal
    fee_percent: Decimal
    status: OrderStatus = "pending"
    window_snapshots: list[WindowSnapshot] = Field(default_factory=list)
    partial_results: list[PartialResult] = Field(default_factory=list)
    window_results: list[WindowResult] = Field(default_factory=list)
    total_consumed: int = 0
    loss: Decimal = Decimal("0")
    completed_amount: Decimal = Decimal("0")
    execution_history: list[ExecutionRecord] = Field(default_factory=list)
    created_at: str | None = None
    completed_at: str | None = None


class TransferredWindow(BaseModel):
    window_id: str
    machine_id: str
    window_number: str
    gold_balance: int


class MachineSnapshot(BaseModel):
    machine_id: str
    phone: str
    platform: str
    login_type: str = "code"
    login_password: str | None = None


class TransferRequest(BaseModel):
    id: str
    kind: TransferKind
    from_tenant_id: str
    to_tenant_id: str
    machines: list[MachineSnapshot] = Field(default_factory=list)
    windows: list[TransferredWindow] = Field(default_factory=list)
    price: Decimal = Field(ge=0)
    total_gold: int = Field(ge=0)
    status: TransferStatus = "pending"
    whole_machine: bool = False
    created_at: str | None = None
    resolved_at: str | None = None
    sender_cost_basis: Decimal | None = None
    profit: Decimal | None = None
    created_machine_ids: list[str] = Field(default_factory=list)


class WindowRecharge(BaseModel):
    id: str
    tenant_id: str
    window_id: str
    amount: int = Field(gt=0)
    balance_before: int
    balance_after: int
    created_at: str
    created_by: str | None = None


class WindowRequest(BaseModel):
    id: str
    tenant_id: str
    staff_id: str
    staff_name: str
    type: Literal["apply", "release"]
    window_id: str
    status: Literal["pending", "approved", "rejected"] = "pending"
    created_at: str
    processed_at: str | None = None
    processed_by: str | None = None
    note: str | None = None


class DailyStats(BaseModel):
    date: str
    order_amount: Decimal = Decimal("0")
    loss_amount: Decimal = Decimal("0")
    revenue: Decimal = Decimal("0")
    employee_cost: Decimal = Decimal("0")
    cogs: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    inventory_after: Decimal = Decimal("0")
    order_count: int = 0


class GlobalStats(BaseModel):
    total_purchased: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    avg_cost_per_1000: Decimal = Decimal("0")
    current_inventory: Decimal = Decimal("0")
    inventory_value: Decimal = Decimal("0")
    total_profit: Decimal = Decimal("0")
    current_cash: Decimal = Decimal("0")
    total_assets: Decimal = Decimal("0")


class SettlementReport(BaseModel):
    tenant_id: str
    daily: list[DailyStats] = Field(default_factory=list)
    summary: GlobalStats = Field(default_factory=GlobalStats)


class StaffStats(BaseModel):
    staff_id: str
    staff_name: str
    total_orders: int = 0
    total_amount: Decimal = Decimal("0")
    total_loss: Decimal = Decimal("0")
    total_labor_cost_earned: Decimal = Decimal("0")
