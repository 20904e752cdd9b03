"""
RNG 服務：所有遊戲共用的亂數來源

純計算邏輯，不持有任何房間狀態。
預設使用作業系統的密碼學亂數（random.SystemRandom），不支援 seed，
因為這裡只要求「符合宣告權重的均勻分佈」，不要求可重現。
"""
import random
from typing import Optional, Sequence, Union


class RngResolver:
    """
    亂數解析器

    source 只需要提供 randrange(n)；測試可以注入一個腳本化的替身。
    """

    def __init__(self, source: Optional[random.Random] = None):
        self.source = source if source is not None else random.SystemRandom()

    def uniform(self, n: int) -> int:
        """
        回傳 [0, n) 之間的均勻整數

        異常：
            ValueError: n <= 0
        """
        if n <= 0:
            raise ValueError(f"uniform() needs a positive range, got {n}")
        return self.source.randrange(n)

    def weighted_pick(self, segments: Sequence[Union[int, object]]) -> int:
        """
        依權重抽出一個 segment 的 index

        流程：
        1. 在 [0, totalWeight) 抽一個均勻整數
        2. 依序扣掉每個 segment 的權重，餘數變成負數時回傳該 index

        參數：
            segments: 權重（非負整數）序列，或帶有 weight 屬性的物件序列

        返回：
            被選中的 index（權重為 0 的 segment 永遠不會被選中）

        異常：
            ValueError: 權重為負，或總權重為 0
        """
        weights = [_weight_of(seg) for seg in segments]
        if any(w < 0 for w in weights):
            raise ValueError("Segment weights must be non-negative")

        total = sum(weights)
        r = self.uniform(total)
        for index, weight in enumerate(weights):
            r -= weight
            if r < 0:
                return index

        # 不會到這裡：r < total 保證迴圈內一定回傳
        raise AssertionError("weighted_pick walked past the last segment")


def _weight_of(segment) -> int:
    if isinstance(segment, int):
        return segment
    return int(segment.weight)
