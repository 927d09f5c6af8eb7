# company_profile.py
"""
Company identity shown in the invoice header.

The profile is a JSON blob under the "companyProfile" key of a key/value
store. Anything with a `get(key)` method works as a store (a plain dict
included); `SqlSettingsStorage` is the persisted one.
"""
import json
import logging
from documents import CompanyIdentity
from models import AppSetting

logger = logging.getLogger(__name__)

COMPANY_PROFILE_KEY = "companyProfile"
MIN_PHONE_LENGTH = 8


class CompanyProfileError(ValueError):
    pass


class SqlSettingsStorage:
    """Key/value strings in the app_settings table, one short session per call."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get(self, key: str) -> str | None:
        with self._session_factory() as s:
            row = s.get(AppSetting, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as s:
            row = s.get(AppSetting, key)
            if row is None:
                row = AppSetting(key=key, value=value)
                s.add(row)
            else:
                row.value = value
            s.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as s:
            row = s.get(AppSetting, key)
            if row is not None:
                s.delete(row)
                s.commit()


def _clean_list(raw) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    out = []
    for v in raw:
        s = str("" if v is None else v).strip()
        if s:
            out.append(s)
    return tuple(out)


def parse_company_profile(raw: str | None) -> CompanyIdentity | None:
    if not raw:
        return None
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        return None

    name = parsed.get("name")
    email = parsed.get("email")
    company = CompanyIdentity(
        name=name.strip() or None if isinstance(name, str) else None,
        email=email.strip() or None if isinstance(email, str) else None,
        phone_numbers=_clean_list(parsed.get("phoneNumbers")),
        addresses=_clean_list(parsed.get("addresses")),
    )
    return company if company.is_present() else None


def load_company_profile(storage) -> CompanyIdentity | None:
    """Returns None when nothing usable is stored; never raises."""
    if storage is None:
        return None
    try:
        return parse_company_profile(storage.get(COMPANY_PROFILE_KEY))
    except Exception as e:
        logger.warning("Ignoring unreadable company profile: %s", e)
        return None


def save_company_profile(storage, data: dict) -> CompanyIdentity:
    """
    Validate + persist a company profile posted from the settings form.
    Blank phones/addresses are dropped; any remaining phone shorter than
    MIN_PHONE_LENGTH is rejected.
    """
    data = data or {}
    phones = _clean_list(data.get("phoneNumbers") or [])
    for phone in phones:
        if len(phone) < MIN_PHONE_LENGTH:
            raise CompanyProfileError(f"Phone numbers must be at least {MIN_PHONE_LENGTH} digits")

    payload = {
        "name": str(data.get("name") or "").strip(),
        "email": str(data.get("email") or "").strip(),
        "phoneNumbers": list(phones),
        "addresses": list(_clean_list(data.get("addresses") or [])),
        "description": str(data.get("description") or "").strip(),
        "locked": True,
    }
    storage.set(COMPANY_PROFILE_KEY, json.dumps(payload))
    return CompanyIdentity(
        name=payload["name"] or None,
        email=payload["email"] or None,
        phone_numbers=phones,
        addresses=tuple(payload["addresses"]),
    )


def clear_company_profile(storage) -> None:
    storage.delete(COMPANY_PROFILE_KEY)
