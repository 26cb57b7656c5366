from .json_ledger import JsonMemberLedger, LedgerDocument

__all__ = ["JsonMemberLedger", "LedgerDocument"]
