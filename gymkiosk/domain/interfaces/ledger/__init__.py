from .member_ledger import MemberLedger

__all__ = ["MemberLedger"]
