"""
MiniLang verifier - shared configuration constants.

All tunable parameters live here so that every module imports from
one canonical source.  Environment variables override the defaults.
"""
import os

# ── Loops ─────────────────────────────────────────────────────────────
DEFAULT_UNROLL_DEPTH: int = int(os.getenv("MINILANG_UNROLL_DEPTH", "3"))
# SSA form shown in reports: "phi" (loop-entry / exit phi nodes) or "unroll".
# Verdicts always solve the unrolled form.
LOOP_MODE: str = os.getenv("MINILANG_LOOP_MODE", "phi")

# ── Solver ────────────────────────────────────────────────────────────
Z3_TIMEOUT_MS: int = int(os.getenv("MINILANG_Z3_TIMEOUT_MS", "10000"))
MAX_MODELS: int = int(os.getenv("MINILANG_MAX_MODELS", "2"))

# ── Equivalence ───────────────────────────────────────────────────────
EQUIVALENCE_SUFFIX: str = "_p2"

# ── Logging ───────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("MINILANG_LOG_LEVEL", "INFO")
LOG_FORMAT: str = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

ENGINE_VERSION: str = "minilang-0.1.0"
