"""
Theme constants: colors, chart layout, and the fleet's business constants.
Import from here instead of hardcoding colors or bank names anywhere.
"""

import os

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

# ── Color Palette ────────────────────────────────────────────────────────────
BG = "#0a0a14"
CARD = "#141828"
CARD2 = "#1a1a2e"
GREEN = "#2ecc71"
RED = "#e74c3c"
BLUE = "#3498db"
ORANGE = "#f39c12"
PURPLE = "#9b59b6"
TEAL = "#1abc9c"
PINK = "#e91e8f"
WHITE = "#ffffff"
GRAY = "#aaaaaa"
DARKGRAY = "#666666"
CYAN = "#00d4ff"

# ── Deposit status colors ────────────────────────────────────────────────────
STATUS_COLORS = {
    "depositable": GREEN,
    "already_deposited": BLUE,
    "loss": RED,
}

STATUS_LABELS = {
    "depositable": "Depositable",
    "already_deposited": "Deposited",
    "loss": "Loss",
}

# ── Expense categories ───────────────────────────────────────────────────────
# "Fuel" and "Subsidy" are reserved: any casing is stored in this exact form.
RESERVED_CATEGORIES = ("Fuel", "Subsidy")

CATEGORY_OPTIONS = [
    "Fuel", "Subsidy", "Driver", "Tolls", "Maintenance", "Food", "Parking", "Other",
]

CATEGORY_COLORS = {
    "Fuel": ORANGE,
    "Subsidy": TEAL,
    "Driver": BLUE,
    "Tolls": PURPLE,
    "Maintenance": PINK,
    "Food": CYAN,
    "Parking": GRAY,
    "Other": "#555555",
}

RENTAL_EXPENSE_CATEGORIES = ["fuel", "driver", "maintenance", "tolls", "other"]
PAYMENT_METHODS = ["Cash", "Bank Transfer", "Multicaixa", "Other"]

# ── Banks & vehicles ─────────────────────────────────────────────────────────
BANK_OPTIONS = ["Caixa Angola", "BAI"]
DEFAULT_BANK = "Caixa Angola"

AGASEKE_PLATES = ("LDA-25-91-AD", "LDA-25-92-AD", "LDA-25-93-AD")
# Agaseke vehicles are never deposited into this bank.
AGASEKE_EXCLUDED_BANK = os.environ.get("FLEET_EXCLUDED_BANK", "BAI")
BANK_EXCLUDED_PLATES = tuple(
    p.strip().upper() for p in os.environ.get("FLEET_EXCLUDED_PLATES", "").split(",")
    if p.strip()
) or AGASEKE_PLATES

COMMON_ROUTES = [
    "LUANDA - MBANZA", "MBANZA - LUANDA",
    "LUANDA - HUAMBO", "HUAMBO - LUANDA",
    "LUVU - LUANDA", "LUANDA - LUVU",
    "MBANZA - HUAMBO", "HUAMBO - MBANZA",
    "CAXITO - LUANDA", "LUANDA - CAXITO",
    "UIGE - LUANDA", "LUANDA - UIGE",
]

REPORT_STATUSES = ["Operational", "Non-Operational"]
RENTAL_STATUSES = ["active", "completed", "cancelled"]
MAINTENANCE_STATUSES = ["Scheduled", "In Progress", "Completed"]

# ── Report flagging thresholds ───────────────────────────────────────────────
FLAG_MIN_NET_MARGIN = 0.5
FLAG_MAX_EXPENSES = 210000

# ── Paging / uploads ─────────────────────────────────────────────────────────
RECORDS_PER_PAGE = 20
MAX_UPLOAD_MB = 5
CURRENCY = "AOA"

# ── Storage buckets ──────────────────────────────────────────────────────────
SLIP_BUCKET = "bank-slips"
RECEIPT_BUCKET = "receipts"
RENTAL_RECEIPT_BUCKET = "rental-receipts"

# ── Plotly Chart Layout ──────────────────────────────────────────────────────
CHART_LAYOUT = dict(
    template="plotly_dark",
    paper_bgcolor="rgba(0,0,0,0)",
    plot_bgcolor="rgba(0,0,0,0)",
    font={"color": WHITE},
    margin=dict(t=50, b=30, l=60, r=20),
)

# ── Bootstrap class helpers ──────────────────────────────────────────────────
CARD_CLASS = "shadow-sm"

TOAST_STYLE = {"position": "fixed", "top": 20, "right": 20, "zIndex": 9999}
