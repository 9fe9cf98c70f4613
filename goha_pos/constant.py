"""Static labels, enumerations and keys shared by the client."""

from __future__ import annotations

# Order types as the backend spells them.
ORDER_TYPE_DINE_IN = "dine-in"
ORDER_TYPE_TAKEAWAY = "takeaway"
ORDER_TYPE_DELIVERY = "delivery"
ORDER_TYPE_CAFE = "cafe"
ORDER_TYPES: tuple[str, ...] = (
    ORDER_TYPE_DINE_IN,
    ORDER_TYPE_TAKEAWAY,
    ORDER_TYPE_DELIVERY,
    ORDER_TYPE_CAFE,
)

ORDER_TYPE_LABELS: dict[str, str] = {
    ORDER_TYPE_DINE_IN: "صالة",
    ORDER_TYPE_TAKEAWAY: "تيك أواي",
    ORDER_TYPE_DELIVERY: "توصيل",
    ORDER_TYPE_CAFE: "كافيه",
}

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_READY = "ready"
STATUS_DELIVERED = "delivered"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
ORDER_STATUSES: tuple[str, ...] = (
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_READY,
    STATUS_DELIVERED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)

PAYMENT_METHODS: tuple[str, ...] = ("cash", "card")

SOURCE_API = "api"
SOURCE_LOCAL = "localStorage"

# Ids generated client-side never exist on the server.
LOCAL_ORDER_PREFIX = "cafe_"

SHIFT_TYPE_LABELS: dict[str, str] = {
    "morning": "صباحية",
    "night": "ليلية",
    "evening": "مسائية",
}
SHIFT_STATUS_OPENED = "opened"
SHIFT_STATUS_CLOSED = "closed"

STOCK_STATUS_AVAILABLE = "available"
STOCK_STATUS_WARNING = "warning"
STOCK_STATUS_LOW = "low"
STOCK_STATUS_OUT = "out"
STOCK_STATUS_LABELS: dict[str, str] = {
    STOCK_STATUS_AVAILABLE: "متوفر",
    STOCK_STATUS_WARNING: "تحذير",
    STOCK_STATUS_LOW: "منخفض",
    STOCK_STATUS_OUT: "نفذ المخزون",
}
# A quantity at or below minimum × this factor is flagged as a warning.
STOCK_WARNING_FACTOR = 1.5

STOCK_TRANSACTION_IN = "in"
STOCK_TRANSACTION_OUT = "out"

STOCK_ITEM_TYPES: dict[str, str] = {
    "INGREDIENT": "مكونات",
    "EQUIPMENT": "ادوات",
    "VEGETABLE": "خضراوات",
    "FRUIT": "فاكهة",
    "MEAT": "لحم",
    "CHICKEN": "فراخ",
    "FISH": "سمك",
    "DRINK": "مشروبات",
    "OTHER": "اخري",
}

# Placeholders substituted by the normalizers.
UNKNOWN_PRODUCT = "منتج غير معروف"
DEFAULT_SIZE = "عادي"
UNKNOWN_EXTRA = "[إضافة غير معروفة]"
EXTRA_PLACEHOLDER_PREFIX = "إضافة"
UNKNOWN_USER = "مستخدم غير معروف"
DEFAULT_STAFF_NAME = "موظف الكافية"
CURRENCY_SUFFIX = "ج.م"

# Local storage keys.
KEY_CURRENT_USER = "currentUser"
KEY_CURRENT_SHIFT = "currentShift"
KEY_AUTH_TOKEN = "authToken"
KEY_CAFE_ORDERS = "cafeOrders"
KEY_SAVED_ORDERS = "savedOrders"

# In-process event names.
EVENT_ORDER_ADDED = "orderAdded"
EVENT_CAFE_ORDER_ADDED = "cafeOrderAdded"
EVENT_CAFE_ORDER_DELETED = "cafeOrderDeleted"
EVENT_CAFE_ORDER_PAID = "cafeOrderPaid"
ORDER_EVENTS: tuple[str, ...] = (
    EVENT_ORDER_ADDED,
    EVENT_CAFE_ORDER_ADDED,
    EVENT_CAFE_ORDER_DELETED,
    EVENT_CAFE_ORDER_PAID,
)

# User-facing messages.
MSG_EMPTY_CART = "لا يمكن حفظ طلب فارغ"
MSG_LOGIN_AGAIN = "يرجى تسجيل الدخول مجدداً"
MSG_SAVED_API = "✅ تم حفظ الطلب بنجاح في النظام!"
MSG_SAVED_LOCAL = "⚠️ تم حفظ الطلب محلياً. سيتم رفعه للنظام لاحقاً."
MSG_INVALID_ORDER_ID = "❌ معرف الطلب غير صحيح"
MSG_DELETED_API = "✅ تم حذف الطلب بنجاح من النظام والتخزين المحلي!"
MSG_DELETED_LOCAL = "✅ تم حذف الطلب من التخزين المحلي!"
MSG_NO_UNPAID = "لا توجد طلبات غير مدفوعة لتأكيدها في الوردية الحالية."
MSG_SELECT_SIZE = "يرجى اختيار الحجم"
MSG_NETWORK_ERROR = "خطأ في الشبكة"
MSG_UNKNOWN_ERROR = "خطأ غير معروف"
