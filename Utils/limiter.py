from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Limits and storage come from the RATELIMIT_* config keys at init_app time
limiter = Limiter(get_remote_address)
