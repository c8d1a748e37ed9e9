"""Constants for the Supabase store."""

PERIODS_ENDPOINT = "/available_periods"

ENTITY_COLUMN = "service_id"
SELECT_COLUMNS = "date,price"

APIKEY_HEADER = "apikey"
AUTH_HEADER = "Authorization"
AUTH_PREFIX = "Bearer "
PREFER_HEADER = "Prefer"
PREFER_MINIMAL = "return=minimal"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "pycalendarpricing-supabase",
}
