"""
Category Classifier

DESIGN DECISION: Classification is a pure keyword table lookup.
- The table is plain data (CategoryRule tuples), extended without
  touching the matching logic
- Rules are tested in order, the first match wins
- No I/O, no model calls, fully deterministic

Keywords are matched as substrings of the lower-cased text, so short ASCII
keywords such as "gu" or "jr" also hit inside longer words. Rule order
resolves the overlaps (アオキ is food before it is clothing).
"""

import re
from typing import Iterable, NamedTuple, Optional, Sequence

from kakeibo.models.ledger import UNCATEGORIZED


# =============================================================================
# CATEGORY LABELS
# =============================================================================

FOOD = "食費"
DAILY_GOODS = "日用品"
TRANSPORT = "交通費"
ENTERTAINMENT = "娯楽"
MEDICAL = "医療"
CLOTHING = "衣服"
TELECOM = "通信費"
SOCIAL = "交際費"
OTHER = "その他"

# Shown on the dashboard when the household has not configured its own list
DEFAULT_CATEGORY_LABELS = (
    FOOD, DAILY_GOODS, TRANSPORT, ENTERTAINMENT, MEDICAL, CLOTHING, SOCIAL, OTHER,
)


def _keyword_pattern(keywords: Iterable[str]) -> str:
    return "|".join(re.escape(keyword.lower()) for keyword in keywords)


class CategoryRule(NamedTuple):
    """One (category, keyword pattern) row of the classification table."""

    category: str
    pattern: str

    @classmethod
    def from_keywords(cls, category: str, keywords: Iterable[str]) -> "CategoryRule":
        return cls(category, _keyword_pattern(keywords))


DEFAULT_CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule.from_keywords(FOOD, [
        "スーパー", "イオン", "ウエルシア", "セブン", "ファミマ", "ローソン", "マクド",
        "モス", "ケンタッキー", "くら寿司", "すき家", "吉野家", "松屋", "なか卯", "王将",
        "ココス", "食品", "ピザ", "パン", "ベーカリー", "カフェ", "スタバ", "ドトール",
        "コーヒー", "レストラン", "居酒屋", "食堂", "弁当", "ガスト", "デニーズ",
        "バーガー", "ランチ", "うどん", "そば", "ラーメン", "焼肉", "定食", "コンビニ",
        "飲食", "グルメ", "ドンキ", "はま寿司", "アオキ", "バロー", "業務", "ようげん",
        "あまのや", "ubereats", "uber eats", "出前館", "ディナー", "夕食", "朝食",
        "夜ごはん", "昼ごはん", "飲み会", "飲み", "外食", "ご飯", "食事",
    ]),
    CategoryRule.from_keywords(DAILY_GOODS, [
        "ドラッグ", "薬局", "クスリ", "マツモトキヨシ", "サンドラッグ", "コスモス",
        "ダイソー", "カインズ", "ホームセンター", "ニトリ", "コーナン", "ドン・キホーテ",
        "無印良品", "ロフト", "シャンプー", "赤ちゃん本舗", "買い物", "買物",
        "ショッピング",
    ]),
    CategoryRule.from_keywords(TRANSPORT, [
        "jr", "suica", "pasmo", "鉄道", "タクシー", "ガソリン", "駅", "電車", "バス",
        "型タク", "航空", "空港", "gas", "eneos", "出光", "shell", "コスモ石油", "駐車",
        "給油", "ドライブ",
    ]),
    CategoryRule.from_keywords(ENTERTAINMENT, [
        "映画", "シネマ", "カラオケ", "ゲーム", "ボウリング", "テーマパーク", "遊園地",
        "アミューズ", "スポーツ", "ジム", "美術館", "博物館", "netflix", "spotify",
        "amazon prime", "youtube", "disney", "ネットフリックス", "書籍", "本屋",
        "旅行", "ホテル", "温泉", "観光", "遊び", "デート", "イベント", "ライブ",
        "コンサート",
    ]),
    CategoryRule.from_keywords(MEDICAL, [
        "病院", "クリニック", "歯科", "歯医者", "薬", "医院", "調剤", "診療", "健康",
        "整形", "美容外科", "美容皮膚", "内科", "小児科", "眼科", "耳鼻", "皮膚科",
        "検診", "健診", "通院",
    ]),
    CategoryRule.from_keywords(CLOTHING, [
        "ユニクロ", "gu", "ザラ", "h&m", "シマムラ", "アオキ", "服", "アパレル",
        "ファッション", "abcマート", "靴", "シューズ",
    ]),
    CategoryRule.from_keywords(TELECOM, [
        "ソフトバンク", "docomo", "au", "softbank", "ラインモバイル", "ocn", "nuro",
        "ビッグローブ", "wifi", "wi-fi", "通信",
    ]),
    # Beauty salons are booked as daily goods
    CategoryRule.from_keywords(DAILY_GOODS, [
        "美容院", "美容室", "ヘアサロン", "サロン", "ネイル", "エステ", "マッサージ",
        "整体", "カット", "パーマ", "ヘアカラー",
    ]),
    # So are electronics and general online shopping
    CategoryRule.from_keywords(DAILY_GOODS, [
        "ヤマダ電機", "ビックカメラ", "ヨドバシ", "ケーズ電器", "apple", "アップル",
        "アマゾン", "amazon",
    ]),
)


class CategoryClassifier:
    """
    Maps free text (merchant names, memos, event titles) to a category.

    Usage:
        classifier = CategoryClassifier()
        classifier.classify("セブンイレブン")   # -> "食費"
    """

    def __init__(
        self,
        rules: Sequence[CategoryRule] = DEFAULT_CATEGORY_RULES,
        default: str = UNCATEGORIZED,
    ):
        self._default = default
        self._rules = [
            (rule.category, re.compile(rule.pattern))
            for rule in rules
        ]

    @property
    def default(self) -> str:
        return self._default

    def classify(self, text: Optional[str]) -> str:
        """Return the category of the first matching rule, else the default."""
        if not text:
            return self._default

        lowered = text.lower()
        for category, pattern in self._rules:
            if pattern.search(lowered):
                return category
        return self._default

    def is_default(self, category: str) -> bool:
        return category == self._default


_default_classifier = CategoryClassifier()


def classify(text: Optional[str]) -> str:
    """Classify with the built-in rule table."""
    return _default_classifier.classify(text)
