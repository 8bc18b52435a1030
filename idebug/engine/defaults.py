"""Default values used when the host does not configure the debugger.

Anything here can be overridden per launch through ``DebuggerConfig`` and
most of it through the environment (see ``idebug.engine.config``).
"""

# ── Window ──────────────────────────────────────────────────────────
DEFAULT_TITLE = "Windows Debugger"

# ── Wire protocol ───────────────────────────────────────────────────
# Written whenever the session is ready for the next line.
PROMPT = "> "

# Only ever bind loopback. Port 0 lets the OS pick an unused ephemeral port.
LOOPBACK_HOST = "127.0.0.1"
EPHEMERAL_PORT = 0

# Typed into the terminal to end the session without closing the window.
EXIT_COMMAND = ".exit"

# Big enough for pasted code blocks, small enough that one client can't
# balloon the host's memory with a single unterminated line.
LINE_LIMIT = 2**20

# Seconds a fresh connection gets to send its secret before we hang up.
AUTH_TIMEOUT = 30.0

# ── Output ──────────────────────────────────────────────────────────
NONE_PLACEHOLDER = "None"
FORMAT_DEPTH = 32
FORMAT_WIDTH = 100

# ── Environment ─────────────────────────────────────────────────────
# The spawned terminal receives the secret through this variable so it
# never shows up in the process list.
PASSWORD_ENV = "IDEBUG_PASSWORD"
TITLE_ENV = "IDEBUG_TITLE"
PROMPT_ENV = "IDEBUG_PROMPT"
DOTENV_FILE = ".env.idebug"
