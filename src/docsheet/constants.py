"""Project-wide constants for docsheet.

Endpoints, OAuth2 parameters, generation defaults and the standard table
schema used when a pipe-delimited reply has no header row.
"""

# OAuth2 / service-account auth
TOKEN_URI = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
ASSERTION_LIFETIME = 3600  # seconds, Google rejects anything longer

# Vertex AI
DEFAULT_MODEL = "gemini-2.5-flash-lite"
DEFAULT_LOCATION = "us-central1"
DEFAULT_DOCUMENT_MIME_TYPE = "application/pdf"

# Generation defaults
EXTRACTION_TEMPERATURE = 0.0
EXTRACTION_MAX_OUTPUT_TOKENS = 65_535
CHAT_TEMPERATURE = 0.7
CHAT_MAX_OUTPUT_TOKENS = 8_192

DEFAULT_EXTRACTION_INSTRUCTION = (
    "Extract all relevant information from this question paper and format it "
    "as a JSON array of objects suitable for a spreadsheet."
)

STRICT_EXTRACTION_DIRECTIVE = (
    "STRICT EXTRACTION RULES: Only output rows for content that is actually "
    "present in the provided document. Do not invent, continue, or complete "
    "questions, options, or answers that are not in the document. When the "
    "document content ends, stop the output immediately."
)

CONTEXT_ACKNOWLEDGEMENT = (
    "Understood. I will use this context to answer the following messages."
)

# Errors carry at most this many characters of a provider payload or reply
EXCERPT_LIMIT = 100

# Response normalization
JSON_CONTAINER_KEYS = ("questions", "data", "results")

PSV_DELIMITER = "|"
STANDARD_COLUMNS = (
    "S.No",
    "Question",
    "Option A",
    "Option B",
    "Option C",
    "Option D",
    "Answer",
    "Marks",
    "Section",
    "Question Type",
)
