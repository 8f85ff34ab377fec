# feeds/schemas/reactions.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReactionKind(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    LAUGH = "laugh"
    AMAZED = "amazed"
    LOVE = "love"
    SAD = "sad"
    ANGRY = "angry"
    AGREE = "agree"
    DISAGREE = "disagree"


class ReactionOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: ReactionKind
    label: str
    emoji: str


# Display order
REACTION_OPTIONS: List[ReactionOption] = [
    ReactionOption(id=ReactionKind.LIKE, label="Like", emoji="👍"),
    ReactionOption(id=ReactionKind.DISLIKE, label="Dislike", emoji="👎"),
    ReactionOption(id=ReactionKind.LAUGH, label="Laugh", emoji="😂"),
    ReactionOption(id=ReactionKind.AMAZED, label="Amazed", emoji="😮"),
    ReactionOption(id=ReactionKind.LOVE, label="Love", emoji="😍"),
    ReactionOption(id=ReactionKind.SAD, label="Sad", emoji="😢"),
    ReactionOption(id=ReactionKind.ANGRY, label="Angry", emoji="😡"),
    ReactionOption(id=ReactionKind.AGREE, label="Agree", emoji="🤝"),
    ReactionOption(id=ReactionKind.DISAGREE, label="Disagree", emoji="🙅"),
]


# ==================== Request / Response Schemas ====================


class ApplyReactionRequest(BaseModel):
    reactions: dict = Field(default_factory=dict)
    user_reaction: Optional[str] = None
    # "" or null clears the active reaction
    reaction: Optional[str] = Field(None, max_length=20)


class ApplyReactionResponse(BaseModel):
    reactions: dict
    user_reaction: Optional[ReactionKind] = None
