"""
allocation.py - 採購分配引擎 (v1.0)

依喊單先後 (timestamp 由小到大) 把「實際買到的總數」瀑布式分配給同一
商品款式的所有訂單: 前面的訂單全部滿足之後，後面的訂單才會分到。

- 總數下限截為 0，上限不截 (多買的部分成為庫存剩餘，不是錯誤)
- 每筆訂單都會產生一個 OrderUpdate，即使數值沒變
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Sequence

from ..core.exceptions import ValidationError
from .aggregation import DemandGroup, sort_by_priority
from .models import Order, OrderStatus, OrderUpdate


@dataclass(frozen=True)
class IncrementResult:
    """追加採購結果

    newly_satisfied_order_ids: 需求區間與本次新增供給區間有交集的訂單
    newly_completed_order_ids: 本次追加後才剛好全部買齊的訂單
    """
    updates: List[OrderUpdate]
    newly_satisfied_order_ids: FrozenSet[str]
    newly_completed_order_ids: FrozenSet[str]
    old_total_bought: int
    new_total_bought: int


def reallocate(group: DemandGroup, new_total_bought: int) -> List[OrderUpdate]:
    """以新的採購總數重新分配整個群組

    Args:
        group: 需求群組
        new_total_bought: 實際買到的總數

    Returns:
        依優先序排列的 OrderUpdate 清單
    """
    remaining = max(0, int(new_total_bought))
    updates = []

    for order in sort_by_priority(group.orders):
        needed = max(0, order.quantity)
        if remaining >= needed:
            updates.append(OrderUpdate(order.id, needed, OrderStatus.BOUGHT))
            remaining -= needed
        elif remaining > 0:
            # 部分到貨
            updates.append(OrderUpdate(order.id, remaining, OrderStatus.PENDING))
            remaining = 0
        else:
            updates.append(OrderUpdate(order.id, 0, OrderStatus.PENDING))

    return updates


def allocate_increment(group: DemandGroup, added_quantity: int) -> IncrementResult:
    """追加買到 N 個，並找出因這次追加而輪到的訂單

    每筆訂單的需求區間為 [累積需求, 累積需求 + quantity)，
    本次新增的供給區間為 [舊總數, 新總數)。兩者有交集即列入
    newly_satisfied_order_ids。數量為 0 的訂單區間寬度為 0，不會列入。
    """
    if added_quantity < 0:
        raise ValidationError(
            "追加數量不可為負數", field="added_quantity", value=added_quantity
        )

    old_total = group.total_bought
    new_total = old_total + added_quantity
    updates = reallocate(group, new_total)

    touched = set()
    completed = set()
    cumulative = 0
    for order in sort_by_priority(group.orders):
        start = cumulative
        end = cumulative + max(0, order.quantity)
        cumulative = end

        if end > start and max(start, old_total) < min(end, new_total):
            touched.add(order.id)
            if old_total < end <= new_total:
                completed.add(order.id)

    return IncrementResult(
        updates=updates,
        newly_satisfied_order_ids=frozenset(touched),
        newly_completed_order_ids=frozenset(completed),
        old_total_bought=old_total,
        new_total_bought=new_total,
    )


def surplus_for(group: DemandGroup, new_total_bought: int) -> int:
    """超過總需求的數量 (多買)"""
    return max(0, int(new_total_bought) - group.total_needed)


def apply_updates(orders: Sequence[Order], updates: Iterable[OrderUpdate]) -> List[Order]:
    """把分配結果套用到訂單快照，回傳新清單 (原清單不變動)"""
    by_id: Dict[str, OrderUpdate] = {u.order_id: u for u in updates}
    return [by_id[o.id].apply_to(o) if o.id in by_id else o for o in orders]
