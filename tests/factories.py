from app.core.security import create_access_token, hash_password
from app.models import User, UserPlan
from app.services.provisioning import create_generated_api


SENTIMENT_SETUP = {
    "name": "Sentiment Analyzer",
    "description": "Classifies text sentiment.",
    "systemPrompt": "Analyze the sentiment. Respond with JSON {sentiment, confidence, explanation}.",
    "inputSchema": {
        "type": "object",
        "properties": {"text": {"type": "string", "description": "Text to analyze"}},
        "required": ["text"],
    },
    "outputSchema": {
        "type": "object",
        "properties": {"sentiment": {"type": "string"}, "confidence": {"type": "number"}},
    },
    "suggestedEndpoint": "sentiment-analyzer",
}


def make_user(db, email="ada@example.com", plan=UserPlan.FREE, password="secret-pass"):
    user = User(
        email=email,
        full_name="Ada Lovelace",
        hashed_password=hash_password(password),
        plan=plan,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_api(db, user, setup=None, config=None, prompt="Tell me if text is positive or negative"):
    return create_generated_api(db, user_id=user.id, prompt=prompt, setup=dict(setup or SENTIMENT_SETUP), config=config)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}
