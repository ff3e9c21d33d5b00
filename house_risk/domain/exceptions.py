"""Domain-specific exceptions"""

from decimal import Decimal


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class BusinessRuleError(DomainException):
    """Rejection that can be shown to the user as-is"""

    pass


class BillNotFoundError(BusinessRuleError):
    """Bill does not exist"""

    def __init__(self, bill_id: int):
        self.bill_id = bill_id
        super().__init__(f"Bill {bill_id} not found")


class ChargeNotFoundError(BusinessRuleError):
    """Charge does not exist"""

    def __init__(self, charge_id: int):
        self.charge_id = charge_id
        super().__init__(f"Charge {charge_id} not found")


class ChargeNotAdvancedError(BusinessRuleError):
    """Charge is not an outstanding advance, so there is nothing to repay"""

    def __init__(self, charge_id: int):
        self.charge_id = charge_id
        super().__init__(f"Charge {charge_id} is not an outstanding advance")


class HouseNotFoundError(BusinessRuleError):
    """House does not exist"""

    def __init__(self, house_id: int):
        self.house_id = house_id
        super().__init__(f"House {house_id} not found")


class HSINotComputedError(BusinessRuleError):
    """House exists but has not been scored yet"""

    def __init__(self, house_id: int):
        self.house_id = house_id
        super().__init__(f"HSI not computed yet for house {house_id}")


class InsufficientAllowanceError(BusinessRuleError):
    """Requested advance exceeds what the house has left to draw"""

    def __init__(self, requested: Decimal, remaining: Decimal, allowance: Decimal):
        self.requested = requested
        self.remaining = remaining
        self.allowance = allowance
        self.shortfall = requested - remaining
        super().__init__(
            f"Cannot advance ${requested:.2f}. House allowance: ${allowance:.2f}, "
            f"remaining: ${remaining:.2f}, shortfall: ${self.shortfall:.2f}"
        )


class DataIntegrityError(DomainException):
    """An invariant over persisted financial state does not hold"""

    pass


class NotificationDeliveryError(DomainException):
    """Notification service rejected the message or is unavailable"""

    pass
