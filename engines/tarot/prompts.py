"""
Расклады и промпты для толкования карт.

Для каждой карты — отдельный запрос с позицией в раскладе,
в конце — общий запрос, объединяющий все карты.
"""

from enum import Enum

from .deck import Card


class SpreadKind(str, Enum):
    """Тип расклада"""
    SINGLE = "single"
    THREE = "three"
    CELTIC = "celtic"

    @property
    def draw_count(self) -> int:
        return len(SPREAD_POSITIONS[self]["en"])


# ============= ПОЗИЦИИ В РАСКЛАДЕ =============

SPREAD_POSITIONS = {
    SpreadKind.SINGLE: {
        "zh": ["當前的指引"],
        "en": ["Guidance"],
    },
    SpreadKind.THREE: {
        "zh": ["當前的狀況或是問題的根源", "當前面臨的挑戰或機遇", "可能的結果或建議"],
        "en": ["Current situation or root of the question", "Challenge or opportunity", "Possible outcome or advice"],
    },
    SpreadKind.CELTIC: {
        "zh": [
            "目前情況", "挑戰", "潛意識", "過去的影響", "顯意識的目標",
            "不久的將來", "自我", "環境", "希望與恐懼", "結果",
        ],
        "en": [
            "Present Situation", "Challenge", "Subconscious", "Past Influence", "Conscious Goal",
            "Near Future", "Self", "Environment", "Hopes and Fears", "Outcome",
        ],
    },
}

PROMPTS = {
    "zh": {
        "system": (
            "你是一位專業的塔羅牌讀者，擅長解讀塔羅牌的深層含義。請注意以下幾點：\n"
            "1. 請使用繁體中文進行解讀\n"
            "2. 請考慮卡片的正逆位\n"
            "3. 解讀時要結合提問的具體情境\n"
            "4. 給出明確且具體的指引\n\n"
            "使用者的問題是：{question}\n"
            "抽到的牌是：{cards}"
        ),
        "card": "第{number}張牌「{card}」位於「{position}」的位置，對於我的提問，這張牌代表什麼意義？",
        "overall": "請綜合{count}張牌的能量，給出一個完整的解讀。包含當前處境、面臨的挑戰以及未來的建議。",
        "separator": "、",
    },
    "en": {
        "system": (
            "You are a professional tarot reader who interprets the deeper meaning of the cards. Please:\n"
            "1. Answer in English\n"
            "2. Take each card's orientation (upright or reversed) into account\n"
            "3. Relate the reading to the specific situation in the question\n"
            "4. Give clear and concrete guidance\n\n"
            "The user's question: {question}\n"
            "Cards drawn: {cards}"
        ),
        "card": "Card {number}, {card}, is in the position \"{position}\". What does it mean for my question?",
        "overall": "Combine the energy of all {count} cards into one complete reading: the current situation, the challenges ahead and advice for the future.",
        "separator": ", ",
    },
}


def _lang(lang: str) -> str:
    return lang if lang in PROMPTS else "zh"


def positions(spread: SpreadKind, lang: str = "zh") -> list[str]:
    """Названия позиций расклада"""
    return SPREAD_POSITIONS[SpreadKind(spread)][_lang(lang)]


def _system_message(question: str, cards: list[Card], lang: str) -> dict:
    p = PROMPTS[lang]
    labels = p["separator"].join(card.display_name(lang) for card in cards)
    return {"role": "system", "content": p["system"].format(question=question, cards=labels)}


def card_messages(
    question: str,
    cards: list[Card],
    index: int,
    spread: SpreadKind,
    lang: str = "zh",
) -> list[dict]:
    """
    Сообщения для толкования одной карты.

    Args:
        question: Вопрос пользователя
        cards: Все вытянутые карты (в порядке выбора)
        index: Номер толкуемой карты (с нуля)
        spread: Тип расклада
        lang: Язык толкования

    Returns:
        Список сообщений для модели
    """
    lang = _lang(lang)
    card = cards[index]
    user = PROMPTS[lang]["card"].format(
        number=index + 1,
        card=card.display_name(lang),
        position=positions(spread, lang)[index],
    )
    return [_system_message(question, cards, lang), {"role": "user", "content": user}]


def overall_messages(question: str, cards: list[Card], lang: str = "zh") -> list[dict]:
    """Сообщения для общего толкования расклада"""
    lang = _lang(lang)
    user = PROMPTS[lang]["overall"].format(count=len(cards))
    return [_system_message(question, cards, lang), {"role": "user", "content": user}]
