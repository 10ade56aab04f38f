"""Seed a demo user with the sentiment-analyzer API and a known key."""
from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.security import hash_api_key, hash_password, key_display_prefix
from app.models import APIKey, ApiStatus, GeneratedAPI, User, UserPlan
from app.services.provisioning import build_configuration


settings = get_settings()

DEMO_EMAIL = "demo@promptapi.dev"
DEMO_PASSWORD = "demo-password"
DEMO_API_KEY = "pak_demo123456789012345678901234"

SENTIMENT_API = {
    "name": "Sentiment Analyzer",
    "description": "Analyzes the sentiment of given text and returns positive, negative, or neutral classification.",
    "slug": "sentiment-analyzer",
    "user_prompt": "Create an API that analyzes the sentiment of text and tells me if it is positive, negative, or neutral",
    "system_prompt": (
        "You are a sentiment analysis assistant. Analyze the given text and determine its sentiment.\n\n"
        "Respond with a JSON object containing:\n"
        '- sentiment: "positive", "negative", or "neutral"\n'
        "- confidence: a number between 0 and 1\n"
        "- explanation: a brief explanation of why you classified it this way"
    ),
    "input_schema": {
        "type": "object",
        "properties": {"text": {"type": "string", "description": "The text to analyze for sentiment"}},
        "required": ["text"],
    },
    "output_schema": {
        "type": "object",
        "properties": {
            "sentiment": {"type": "string", "enum": ["positive", "negative", "neutral"]},
            "confidence": {"type": "number"},
            "explanation": {"type": "string"},
        },
    },
}


def main():
    db = SessionLocal()
    demo_key = settings.demo_api_key or DEMO_API_KEY
    try:
        user = db.query(User).filter(User.email == DEMO_EMAIL).first()
        if not user:
            user = User(
                email=DEMO_EMAIL,
                full_name="Demo User",
                hashed_password=hash_password(DEMO_PASSWORD),
                plan=UserPlan.STARTER,
            )
            db.add(user)
            db.flush()

        api = db.query(GeneratedAPI).filter(GeneratedAPI.slug == SENTIMENT_API["slug"]).first()
        if not api:
            api = GeneratedAPI(
                user_id=user.id,
                configuration=build_configuration({"temperature": 0.3, "maxTokens": 500}),
                status=ApiStatus.ACTIVE,
                **SENTIMENT_API,
            )
            db.add(api)
            db.flush()

        key_hash = hash_api_key(demo_key)
        if not db.query(APIKey).filter(APIKey.key_hash == key_hash).first():
            db.add(
                APIKey(
                    api_id=api.id,
                    key_hash=key_hash,
                    key_prefix=key_display_prefix(demo_key),
                    name="Demo Key",
                    is_active=True,
                )
            )
        db.commit()
        print(f"Seeded {DEMO_EMAIL} with /api/v1/{api.slug} (key {demo_key})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
