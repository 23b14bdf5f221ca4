"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidPlanConfiguration(DomainException):
    """Payment plan or reminder policy is malformed"""

    pass


class InvalidInstallmentConfig(DomainException):
    """Installment count, cadence or total cannot produce a valid ledger"""

    pass


class NoUpcomingObligation(Exception):
    """Plan has nothing left to collect (terminal result, not a misconfiguration)"""

    def __init__(self, plan_id: str):
        super().__init__(f"No upcoming obligation for plan {plan_id}")
        self.plan_id = plan_id
