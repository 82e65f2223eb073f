import os

from dotenv import load_dotenv

load_dotenv()


def _envFlag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _envFloat(name: str):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


MAX_RUN_COST = _envFloat("MAX_RUN_COST")  # in USD, None means unlimited
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "1"))
USE_MOCK_LLM = _envFlag("USE_MOCK_LLM")

DEFAULT_OUTDIR = "runs"
DEFAULT_SCHEMATIC_DPI = 600

DEFAULT_MODELS = {
    "openai": "gpt-5.2",
    "xai": "grok-4",
    "google": "gemini-2.5-flash",
    "anthropic": "claude-sonnet-4-5-20250929",
}

PROVIDER_API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "xai": "XAI_API_KEY",
    "google": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

XAI_BASE_URL = "https://api.x.ai/v1"

# max output tokens for Claude; other providers use their own defaults
FANOUT_MAX_TOKENS = 1200
ENSEMBLE_MAX_TOKENS = 4800
DEFAULT_MAX_TOKENS = 1800

# include bundling limits
INCLUDES_DIR_NAME = "includes"
MAX_BUNDLED_FILES = 200
MAX_BUNDLED_BYTES = 20_000_000

TAG_MD_OPEN = "<final_markdown>"
TAG_MD_CLOSE = "</final_markdown>"
TAG_SPICE_OPEN = "<spice_netlist>"
TAG_SPICE_CLOSE = "</spice_netlist>"
TAG_JSON_OPEN = "<circuit_json>"
TAG_JSON_CLOSE = "</circuit_json>"

SPICE_FENCE_LANGUAGES = ("spice", "ngspice", "ltspice")

ENSEMBLE_DOMAIN_FOCUS = os.getenv(
    "ENSEMBLE_DOMAIN_FOCUS",
    "We are working on bedini, babcock, half wave bridge circuits; focus on testable advice.",
)

FANOUT_BASELINE_TEMPLATE = "\n\nBASELINE NETLIST (current topology):\n\n```spice\n{netlist}\n```\n"
FANOUT_IMAGE_NOTE = "\n\nNOTE: A schematic screenshot image is provided as context.\n"

ENSEMBLE_BASELINE_TEMPLATE = (
    "\nBASELINE NETLIST (treat as current ground truth topology):\n\n```spice\n{netlist}\n```\n"
)
ENSEMBLE_IMAGE_NOTE_TEMPLATE = """
SCHEMATIC SCREENSHOT PROVIDED: {filename}
- Use the attached image as reference for topology/components.
- If it conflicts with any model text, prefer the screenshot + baseline netlist.
"""

ANSWER_SEPARATOR = "\n---\n"

ENSEMBLE_PROMPT = (
    """You are an expert electrical engineer + experimentalist.
Your job is to ensemble multiple AI outputs into a single careful recommendation.
{domain_focus}

QUESTION:
{question}
{baseline}{image_note}

MODEL OUTPUTS:
{answers}

HARD REQUIREMENTS:
- If you propose a circuit, output a SPICE netlist that is runnable at a block level.
- Explicitly list disagreements and how to resolve them with measurements.
- Provide a minimal bench experiment plan.
- Flag safety risks (inductive spikes, battery hazards).
- If something is uncertain, state the missing info.

OUTPUT FORMAT (MUST match exactly):
"""
    + TAG_MD_OPEN
    + """
(Markdown report. Use headings/bullets. Keep it concise (target <= 400-600 words) so there is room for the SPICE netlist + JSON.)
"""
    + TAG_MD_CLOSE
    + "\n\n"
    + TAG_SPICE_OPEN
    + """
(Plain SPICE netlist ONLY (no Markdown, no code fences). Include .tran. Include .model definitions if needed.)
If you are uncertain, still output a BEST-EFFORT runnable netlist.
Do NOT omit this block.
"""
    + TAG_SPICE_CLOSE
    + "\n\n"
    + TAG_JSON_OPEN
    + """
(Strict JSON. Must be valid. Include keys: assumptions[], probes[], bom[], notes[].)
Do NOT omit this block; if unknown, use empty arrays.
"""
    + TAG_JSON_CLOSE
    + "\n"
)

# written in place of an unrecoverable ensemble field
PLACEHOLDER_MARKDOWN = (
    "# Ensemble output\n\n(Ensemble did not provide <final_markdown>; see ensemble_raw.txt.)\n"
)
PLACEHOLDER_MISSING_SPICE_WARNING = "\n> WARNING: Missing SPICE netlist block; see ensemble_raw.txt.\n"
PLACEHOLDER_NETLIST_LINES = [
    "* ERROR: Ensemble output missing <spice_netlist> block.",
    "* See ensemble_raw.txt for the full model output.",
    "* baseline.cir contains the baseline topology netlist.",
    ".end",
    "",
]

MOCK_ANSWER = """A half-wave bridge with a flyback diode is the usual starting point.

```spice
* mock fanout answer
V1 in 0 DC 12
R1 in out 1k
C1 out 0 1u
.tran 1m 10m
.end
```
"""

MOCK_ENSEMBLE_RESPONSE = """<final_markdown>
# Recommendation (mock)

- Start from the RC baseline and measure the output ripple.
- Disagreements: none, all answers are mocked.
</final_markdown>

<spice_netlist>
* mock ensemble netlist
V1 in 0 DC 12
R1 in out 1k
C1 out 0 1u
.tran 1m 10m
.end
</spice_netlist>

<circuit_json>
{"assumptions": ["mock mode"], "probes": ["V(out)"], "bom": ["R1 1k", "C1 1u"], "notes": []}
</circuit_json>
"""
