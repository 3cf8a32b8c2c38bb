"""Runtime configuration for the loan simulator.

Values are read once from the environment when the module is imported. The
engine itself never consults them; they are limits and defaults applied by
the command-line and web front ends.
"""

import os


# Upper bound on the number of periods a front end accepts. The engine does no
# capping of its own, so this is what bounds the work per request.
MAX_PERIODS = int(os.environ.get("LOAN_SIM_MAX_PERIODS", "600"))

# Number of schedule rows printed or rendered before truncating.
SCHEDULE_PREVIEW_ROWS = int(os.environ.get("LOAN_SIM_PREVIEW_ROWS", "120"))

DEFAULT_FREQUENCY = os.environ.get("LOAN_SIM_DEFAULT_FREQUENCY", "monthly")

LOG_LEVEL = os.environ.get("LOAN_SIM_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

WEB_PORT = int(os.environ.get("LOAN_SIM_PORT", "8710"))
