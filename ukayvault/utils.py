# ukayvault/utils.py
import uuid
from datetime import date, datetime

from ukayvault import models as md
from ukayvault.exceptions import ValidationError


def clean_text(text):
    if not text: return ""
    return " ".join(str(text).split())


def generate_id():
    return uuid.uuid4().hex


def format_currency(amount):
    """Whole pesos with thousands separators, e.g. ₱1,234 or -₱500."""
    amount = round(amount or 0)
    sign = "-" if amount < 0 else ""
    return f"{sign}{md.CURRENCY_SYMBOL}{abs(amount):,.0f}"


def format_percent(value):
    return f"{value:.1f}%"


def parse_date(text):
    if isinstance(text, date): return text
    try:
        return datetime.strptime(str(text).strip(), md.DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid date '{text}'. Use YYYY-MM-DD.")


# --- TERMINAL INPUT ---

def get_valid_float(prompt, default=None):
    """Non-negative number; a blank entry gives default when one is set. None means CANCEL."""
    while True:
        entry = input(prompt).strip()
        if entry.upper() == 'CANCEL': return None
        if entry == "" and default is not None: return default
        try:
            value = float(entry)
            if value < 0:
                print("Value cannot be negative.")
                continue
            return value
        except ValueError:
            print("Invalid number. Type a number or 'CANCEL'.")


def get_valid_int(prompt, minimum=1):
    while True:
        entry = input(prompt).strip()
        if entry.upper() == 'CANCEL': return None
        if entry.isdigit() and int(entry) >= minimum:
            return int(entry)
        print(f"Enter a whole number of at least {minimum}, or 'CANCEL'.")


def get_valid_date(prompt, default=None):
    while True:
        entry = input(prompt).strip()
        if entry.upper() == 'CANCEL': return None
        if entry == "" and default is not None: return default
        try:
            return parse_date(entry)
        except ValidationError as e:
            print(e)


def get_selection(prompt, options, labels=None):
    """Numbered menu over options; returns the chosen option or None on BACK."""
    labels = labels or [str(opt) for opt in options]
    print(f"\n{prompt}")
    for i, label in enumerate(labels):
        print(f"{i + 1}. {label}")
    print("0. BACK")

    while True:
        choice = input("Select option #: ").strip()
        if choice == '0' or choice.upper() == 'BACK' or choice == '': return None
        if choice.isdigit():
            idx = int(choice) - 1
            if 0 <= idx < len(options): return options[idx]
        for opt in options:
            if choice.lower() == str(opt).lower(): return opt
        print("Invalid selection.")


def confirm_action(summary_text):
    print("\n" + "="*40)
    print("REVIEW DETAILS")
    print("="*40)
    print(summary_text)
    print("="*40)
    while True:
        ans = input("Is this correct? (y = save / n = retry / c = cancel menu): ").strip().lower()
        if ans == 'y': return "SAVE"
        if ans == 'n': return "RETRY"
        if ans == 'c': return "CANCEL"


def print_aligned(label, value):
    print(f"{label:<20} {value}")


def print_header(text):
    print("\n" + "="*85)
    print(f" {text}")
    print("="*85)
