from .user import User
from .customer import Customer
from .product import Product
from .box import Box, Edition
from .question import (
    QuestionCategory,
    Question,
    QuestionOption,
    QUESTION_TYPES,
    TYPE_MULTIPLE_CHOICE,
    TYPE_EMOJI_RATING,
    TYPE_TEXT,
    TYPE_BOOLEAN,
)
from .feedback import (
    FeedbackSession,
    FeedbackAnswer,
    SESSION_STATUSES,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_ABANDONED,
    FEEDBACK_GROUPS,
    GROUP_PRODUCT,
    GROUP_EXPERIMENTAI,
    GROUP_DELIVERY,
)
from .brand import BrandStatus, Brand, BrandHistory
