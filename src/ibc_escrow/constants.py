"""LCD endpoint paths and engine defaults."""

DEFAULT_LCD_URL = "https://rest.cosmos.directory/cosmoshub"

# Defaults for settings; see settings.MonitorSettings
DEFAULT_PAGE_LIMIT = 100
DEFAULT_CONCURRENCY_LIMIT = 6
DEFAULT_AUTO_REFRESH_SECONDS = 60.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 20.0

# Used when a denom has no metadata or no matching denom unit
DEFAULT_DECIMALS = 6

TRANSFER_PORT = "transfer"
IBC_DENOM_PREFIX = "ibc/"

CHANNELS_PATH = "/ibc/core/channel/v1/channels"
ESCROW_ADDRESS_PATH = (
    "/ibc/apps/transfer/v1/channels/{channel_id}/ports/{port_id}/escrow_address"
)
BALANCES_PATH = "/cosmos/bank/v1beta1/balances/{address}"
DENOM_TRACE_PATH = "/ibc/apps/transfer/v1/denom_traces/{hash}"
DENOMS_METADATA_PATH = "/cosmos/bank/v1beta1/denoms_metadata"
CONNECTION_PATH = "/ibc/core/connection/v1/connections/{connection_id}"
CLIENT_STATE_PATH = "/ibc/core/client/v1/client_states/{client_id}"

PAGINATION_LIMIT_PARAM = "pagination.limit"
PAGINATION_KEY_PARAM = "pagination.key"

# HTTP statuses worth retrying when request_attempts > 1
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
