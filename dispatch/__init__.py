#Expose the high-level pipeline pieces:
#Creation-time matching (order -> candidate couriers)
#Claim coordination (exactly-once accept, monotonic reject)
#Service facade (the "one call" entry points)
#Policy / configuration

from .policy import DispatchPolicy, default_dispatch_policy, policy_from_env
from .matcher import DispatchMatcher, OrderCreated
from .claims import ClaimCoordinator
from .service import DispatchService #the main object to call for every dispatch operation

__all__ = [
    "DispatchPolicy",
    "default_dispatch_policy",
    "policy_from_env",
    "DispatchMatcher",
    "OrderCreated",
    "ClaimCoordinator",
    "DispatchService",
]
