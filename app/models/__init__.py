from app.models.booking import Booking
from app.models.finance import CommissionSettings, Payout, Transaction
from app.models.help import SupportTicket
from app.models.language import Language
from app.models.review import Review
from app.models.user import User

__all__ = [
    "Booking",
    "CommissionSettings",
    "Language",
    "Payout",
    "Review",
    "SupportTicket",
    "Transaction",
    "User",
]
