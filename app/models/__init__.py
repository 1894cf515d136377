from app.models.userModel import StaffAccount
from app.models.clientModel import Client
from app.models.membershipsModel import SubscriptionPlan, Subscription, Payment
from app.models.attendanceModel import Attendance
from app.models.enums import AccessResult, Gender, PaymentMethod, StaffRole, SubscriptionStatus

__all__ = [
    "StaffAccount",
    "Client",
    "SubscriptionPlan", "Subscription", "Payment",
    "Attendance",
    "AccessResult", "Gender", "PaymentMethod", "StaffRole", "SubscriptionStatus",
]
