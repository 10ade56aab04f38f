import logging

from app.services.groq import GroqClient
from app.services.provisioning import slugify


logger = logging.getLogger(__name__)

SETUP_SYSTEM_PROMPT = """You are an AI API designer. Based on the user's request you design the structure of an API.

Reply with a JSON object in exactly this format:
{
  "name": "Short, descriptive name of the API",
  "description": "One or two sentences on what the API does",
  "systemPrompt": "The system prompt given to the AI model on every call (detailed; it must fully describe what the API does and the JSON it returns)",
  "inputSchema": {
    "type": "object",
    "properties": {
      "field_name": { "type": "string", "description": "Field description" }
    },
    "required": ["field_name"]
  },
  "outputSchema": {
    "type": "object",
    "properties": {
      "result_field": { "type": "string", "description": "Result description" }
    }
  },
  "exampleInput": { "field_name": "example value" },
  "exampleOutput": { "result_field": "example result" },
  "suggestedEndpoint": "kebab-case-endpoint-name"
}

Rules:
1. systemPrompt must be detailed and explain exactly what the API does
2. inputSchema and outputSchema must be JSON Schema
3. exampleInput and exampleOutput must be realistic
4. suggestedEndpoint must be URL friendly (kebab-case)"""


def generate_api_setup(client: GroqClient, prompt: str) -> dict:
    """Ask the model for an API proposal. Raises GroqApiError on bad output."""
    setup = client.generate_json(f"User request: {prompt}", SETUP_SYSTEM_PROMPT)
    setup["suggestedEndpoint"] = slugify(setup.get("suggestedEndpoint") or setup.get("name") or "")
    logger.info("Generated API setup name=%s endpoint=%s", setup.get("name"), setup["suggestedEndpoint"])
    return setup
