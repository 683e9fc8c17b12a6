from .executor import EscrowExecutor, DepositPlan, ContractCall

__all__ = ["EscrowExecutor", "DepositPlan", "ContractCall"]
