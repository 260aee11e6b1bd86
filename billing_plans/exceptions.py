class BillingPlansError(Exception):
    """Base exception for the billing plans service."""

    pass


class UnknownPlanError(BillingPlansError):
    """Raised when a product id has no row in the plan catalog."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"No catalog plan for product id '{product_id}'")


class NoEnterprisePlanError(BillingPlansError):
    """Raised when a user has no enterprise plan configured."""

    def __init__(self, user_id: int | None):
        self.user_id = user_id
        super().__init__(f"User {user_id} has no enterprise plan")


class PriceLookupError(BillingPlansError):
    """Raised when the payment provider cannot price a product."""

    pass
