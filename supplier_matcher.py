from typing import Iterable, List

from errors import NoMatchError
from models import Supplier

def match_suppliers(specialty: str, suppliers: Iterable[Supplier]) -> List[Supplier]:
    """
    Return the suppliers whose specialty equals ``specialty`` exactly
    (case-sensitive), in the order they were given.
    """
    matches = [supplier for supplier in suppliers if supplier.specialty == specialty]
    if not matches:
        raise NoMatchError(f"No supplier found for specialty '{specialty}'")
    return matches

def select_supplier(specialty: str, suppliers: Iterable[Supplier]) -> Supplier:
    # 先頭一致を採用（負荷分散・コスト順位付けは未対応）
    return match_suppliers(specialty, suppliers)[0]
