"""
Колода Таро: 78 карт (22 старших аркана + 4 масти по 14).

CATALOG — неизменяемый справочник, общий для всего процесса.
shuffle_deck() возвращает новую перестановку с новыми ориентациями.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Orientation(str, Enum):
    """Положение карты в раскладе"""
    UPRIGHT = "upright"
    REVERSED = "reversed"


@dataclass(frozen=True)
class CardTemplate:
    """Карта из справочника (без ориентации)"""
    identifier: str
    name: str
    name_zh: str
    image_ref: str


@dataclass(frozen=True)
class Card:
    """Карта в перетасованной колоде"""
    identifier: str
    name: str
    name_zh: str
    image_ref: str
    orientation: Orientation

    @property
    def is_reversed(self) -> bool:
        return self.orientation is Orientation.REVERSED

    def display_name(self, lang: str = "zh") -> str:
        """Имя карты с ориентацией: 愚者（正位） / The Fool (upright)"""
        if lang == "zh":
            return self.name_zh + ("（逆位）" if self.is_reversed else "（正位）")
        return f"{self.name} ({'reversed' if self.is_reversed else 'upright'})"

    def image_url(self, base_url: str) -> Optional[str]:
        """URL картинки карты или None, если базовый URL не задан"""
        if not base_url:
            return None
        return f"{base_url.rstrip('/')}/{self.image_ref}"


# ============= СПРАВОЧНИК =============

_MAJOR_ARCANA = [
    ("The Fool", "愚者"),
    ("The Magician", "魔術師"),
    ("The High Priestess", "女祭司"),
    ("The Empress", "皇后"),
    ("The Emperor", "皇帝"),
    ("The Hierophant", "教皇"),
    ("The Lovers", "戀人"),
    ("The Chariot", "戰車"),
    ("Strength", "力量"),
    ("The Hermit", "隱者"),
    ("Wheel of Fortune", "命運之輪"),
    ("Justice", "正義"),
    ("The Hanged Man", "倒吊人"),
    ("Death", "死神"),
    ("Temperance", "節制"),
    ("The Devil", "惡魔"),
    ("The Tower", "高塔"),
    ("The Star", "星星"),
    ("The Moon", "月亮"),
    ("The Sun", "太陽"),
    ("Judgement", "審判"),
    ("The World", "世界"),
]

_SUITS = [
    ("w", "Wands", "權杖"),
    ("c", "Cups", "聖杯"),
    ("s", "Swords", "寶劍"),
    ("p", "Pentacles", "錢幣"),
]

_RANKS = [
    ("Ace", "王牌"),
    ("Two", "二"),
    ("Three", "三"),
    ("Four", "四"),
    ("Five", "五"),
    ("Six", "六"),
    ("Seven", "七"),
    ("Eight", "八"),
    ("Nine", "九"),
    ("Ten", "十"),
    ("Page", "侍者"),
    ("Knight", "騎士"),
    ("Queen", "皇后"),
    ("King", "國王"),
]


def _build_catalog() -> tuple[CardTemplate, ...]:
    cards = []
    for i, (name, name_zh) in enumerate(_MAJOR_ARCANA):
        identifier = f"m{i:02d}"
        cards.append(CardTemplate(identifier, name, name_zh, f"{identifier}.jpg"))

    for code, suit, suit_zh in _SUITS:
        for i, (rank, rank_zh) in enumerate(_RANKS, start=1):
            identifier = f"{code}{i:02d}"
            cards.append(CardTemplate(
                identifier,
                f"{rank} of {suit}",
                f"{suit_zh}{rank_zh}",
                f"{identifier}.jpg",
            ))
    return tuple(cards)


CATALOG = _build_catalog()
DECK_SIZE = len(CATALOG)


def shuffle_deck(rng: random.Random = None) -> list[Card]:
    """
    Тасует колоду.

    Перестановка и ориентация каждой карты выбираются случайно
    и независимо друг от друга.

    Args:
        rng: Генератор случайных чисел (для тестов)

    Returns:
        Новый список из 78 карт
    """
    rng = rng or random.Random()
    order = list(CATALOG)
    rng.shuffle(order)
    return [
        Card(
            identifier=t.identifier,
            name=t.name,
            name_zh=t.name_zh,
            image_ref=t.image_ref,
            orientation=rng.choice((Orientation.UPRIGHT, Orientation.REVERSED)),
        )
        for t in order
    ]
