"""
Domain records for dreams and their enrichment.
"""

from dataclasses import dataclass, field
from typing import List, Optional


MOODS = ['Euphoric', 'Peaceful', 'Confused', 'Anxious', 'Terrified', 'Surreal', 'Nostalgic', 'Adventurous']

SYMBOL_TYPES = ('person', 'place', 'object', 'action')


@dataclass
class DreamSymbol:
    name: str
    meaning: str
    type: str  # person, place, object, action


@dataclass
class DreamAnalysis:
    emotional_analysis: str = ""
    creative_story: str = ""
    themes: List[str] = field(default_factory=list)
    symbols: List[DreamSymbol] = field(default_factory=list)


@dataclass
class Dream:
    id: str
    owner_id: str
    content: str
    mood: str
    clarity: int  # 1-5
    timestamp: int  # epoch milliseconds
    is_recurring: bool = False
    is_public: bool = False
    reality_connection: Optional[str] = None
    image_url: Optional[str] = None
    analysis: Optional[DreamAnalysis] = None
