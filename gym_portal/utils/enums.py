import enum


class PaymentState(str, enum.Enum):
    created = "created"
    paid = "paid"
    failed = "failed"
    expired = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentState.created

    @property
    def rank(self) -> int:
        """Terminality rank: a state may only be replaced by a higher rank."""
        match self:
            case PaymentState.created:
                return 0
            case PaymentState.expired:
                return 1
            case PaymentState.paid | PaymentState.failed:
                return 2


class PaymentStateSource(str, enum.Enum):
    server = "server"   # reported by the backend status endpoint
    local = "local"     # declared by the countdown timer


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    online = "online"


class PlanId(str, enum.Enum):
    one_month = "1month"
    two_month = "2month"
    three_month = "3month"
    six_month = "6month"
    yearly = "yearly"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"


class SubscriptionStatus(str, enum.Enum):
    active = "active"
    pending = "pending"
    expired = "expired"


class NoticeLevel(str, enum.Enum):
    success = "success"
    error = "error"
    warning = "warning"
    info = "info"


class View(str, enum.Enum):
    home = "home"
    thank_you = "thank_you"
    renewal_thank_you = "renewal_thank_you"
    renewal_pending = "renewal_pending"
    payment = "payment"
    admin_login = "admin_login"
    admin_dashboard = "admin_dashboard"
    reset_password = "reset_password"

    def path(self, **params: str) -> str:
        match self:
            case View.home:
                return "/"
            case View.thank_you:
                return "/thank-you"
            case View.renewal_thank_you:
                return "/renewal-thank-you"
            case View.renewal_pending:
                return "/renewal-pending"
            case View.payment:
                return f"/payment/{params['order_id']}"
            case View.admin_login:
                return "/admin"
            case View.admin_dashboard:
                return "/admin/dashboard"
            case View.reset_password:
                return f"/admin/reset-password/{params['token']}"


class AdminSection(str, enum.Enum):
    all = "all"
    pending = "pending"
    plan_1month = "1month"
    plan_2month = "2month"
    plan_3month = "3month"
    plan_6month = "6month"
    plan_yearly = "yearly"
    expired = "expired"
    online_pending = "online-pending"
