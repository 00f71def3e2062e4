import math
from abc import ABC, abstractmethod
from typing import Optional


class DiscreteChoice(ABC):
    """Logit-style rule turning profit rates into allocation weights.

    A node owns one of these and uses it to split its land among its children.
    Weights are unnormalized; the node divides by their sum.
    """

    def __init__(self, logit_exponent: float, base_value: Optional[float] = None):
        self.logit_exponent = logit_exponent
        self.base_value = base_value

    @property
    def base(self) -> float:
        if self.base_value is None or self.base_value <= 0.0:
            return 1.0
        return self.base_value

    def set_base_value(self, value: float):
        """Normalizing profit; only the first positive value sticks."""
        if (self.base_value is None or self.base_value <= 0.0) and value > 0.0:
            self.base_value = value

    @abstractmethod
    def calc_unnormalized_share(self, scaler: float, profit_rate: float, period: int) -> float:
        ...

    @abstractmethod
    def calc_share_weight(self, share: float, profit_rate: float, period: int) -> float:
        ...

    @abstractmethod
    def calc_implied_cost(self, share: float, average_profit_above: float, period: int) -> float:
        ...

    @abstractmethod
    def calc_average_value(self, unnormalized_sum: float, period: int) -> float:
        ...


class RelativeCostLogit(DiscreteChoice):
    """weight = scaler * (profit / base) ** exponent"""

    def calc_unnormalized_share(self, scaler: float, profit_rate: float, period: int) -> float:
        if scaler <= 0.0 or profit_rate <= 0.0:
            return 0.0
        return scaler * (profit_rate / self.base) ** self.logit_exponent

    def calc_share_weight(self, share: float, profit_rate: float, period: int) -> float:
        if profit_rate <= 0.0:
            return 0.0
        return share / (profit_rate / self.base) ** self.logit_exponent

    def calc_implied_cost(self, share: float, average_profit_above: float, period: int) -> float:
        if self.logit_exponent == 0.0:
            return average_profit_above
        if share <= 0.0:
            return 0.0
        return average_profit_above * share ** (1.0 / self.logit_exponent)

    def calc_average_value(self, unnormalized_sum: float, period: int) -> float:
        if unnormalized_sum <= 0.0:
            return 0.0
        if self.logit_exponent == 0.0:
            return self.base
        return self.base * unnormalized_sum ** (1.0 / self.logit_exponent)


class AbsoluteCostLogit(DiscreteChoice):
    """weight = scaler * exp(exponent * profit / base)"""

    def calc_unnormalized_share(self, scaler: float, profit_rate: float, period: int) -> float:
        if scaler <= 0.0:
            return 0.0
        return scaler * math.exp(self.logit_exponent * profit_rate / self.base)

    def calc_share_weight(self, share: float, profit_rate: float, period: int) -> float:
        return share * math.exp(-self.logit_exponent * profit_rate / self.base)

    def calc_implied_cost(self, share: float, average_profit_above: float, period: int) -> float:
        if self.logit_exponent == 0.0:
            return average_profit_above
        if share <= 0.0:
            return 0.0
        return average_profit_above + self.base * math.log(share) / self.logit_exponent

    def calc_average_value(self, unnormalized_sum: float, period: int) -> float:
        if unnormalized_sum <= 0.0 or self.logit_exponent == 0.0:
            return 0.0
        return self.base * math.log(unnormalized_sum) / self.logit_exponent


def create_choice_function(logit_type: str, logit_exponent: float) -> DiscreteChoice:
    if logit_type == "relative":
        return RelativeCostLogit(logit_exponent)
    if logit_type == "absolute":
        return AbsoluteCostLogit(logit_exponent)
    raise ValueError(f"Unknown logit type: {logit_type}")
