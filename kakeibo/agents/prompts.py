"""
Advisor Prompts

The advisor only ever sees figures computed by the aggregation engine.
Every number in a prompt comes from a SpendingAnalysis or an
AggregationSnapshot; the model is asked to comment on them, not to
compute or invent new ones.
"""

from kakeibo.models.summary import AggregationSnapshot, SpendingAnalysis, rounded_percent


ANALYST_INSTRUCTIONS = """あなたは10年以上の経験を持つ冷徹なファイナンシャルアナリストです。
家計簿データに基づき、感情を排して鋭く客観的な分析レポートを作成してください。

## 出力フォーマット（厳守）

### 概況
予算に対する進捗と、前期比較の要約を2〜3文で。

### カテゴリ別診断
前期比で増加が顕著なカテゴリを金額と増加率つきで指摘。
減少したカテゴリがあればそれも記載。

### 浪費アラート
支出上位カテゴリの中で削減余地があるものを特定し、
具体的にいくら削れば予算内に収まるかを金額で提示。

### ペース診断
日次の支出ペースから着地予測を示し、予算内に収まるかどうかを断定。

### アクション提案
残りの期間で予算内に着地するための具体的な行動を2〜3個、箇条書きで。

## ルール
- 応援の言葉は不要。事実と数字のみ。
- 与えられた数字以外の金額を作らないこと。
- 全体で600〜800文字程度。"""


ADVICE_INSTRUCTIONS = """あなたは親しみやすい家計簿のAIアドバイザーです。
以下の今月の家計簿データをもとに、ユーザーにアドバイスを送ってください。

【厳守するルール】
1. トーンは親しみやすく、絵文字を適度に使ってください。
2. 3行〜4行程度に簡潔にまとめてください。
3. まずはこれまでの頑張りを褒め、一番支出が多いカテゴリについて無理なく節約する提案を1つだけ入れてください。
4. Markdown記法は使用せず、プレーンテキストのみを出力してください。"""


def _signed(amount: int) -> str:
    return f"+{amount:,}" if amount > 0 else f"{amount:,}"


def build_analysis_prompt(analysis: SpendingAnalysis) -> str:
    """Full analyst prompt for a weekly or monthly report."""
    current = analysis.current_label
    previous = analysis.previous_label

    if analysis.weekly:
        progress = (
            f"【週次目安予算（月予算の1/4）】: {analysis.period_budget:,}円 "
            f"(消化率: {analysis.budget_used_percent or 0}%)"
        )
        pace = f"日平均支出: {analysis.daily_pace:,}円/日" if analysis.daily_totals else ""
    else:
        elapsed_percent = rounded_percent(analysis.days_elapsed, analysis.days_in_period) or 0
        projected_percent = rounded_percent(analysis.projected_total, analysis.monthly_budget) or 0
        progress = "\n".join([
            f"【月間予算】: {analysis.monthly_budget:,}円",
            f"  日数経過: {analysis.days_elapsed}/{analysis.days_in_period}日 ({elapsed_percent}%)",
            f"  予算消化: {analysis.current_expense:,}/{analysis.monthly_budget:,}円 "
            f"({analysis.budget_used_percent or 0}%)",
            f"  残り予算: {analysis.remaining_budget:,}円 (残{analysis.remaining_days}日)",
        ])
        pace = "\n".join([
            f"1日あたりの許容上限: {analysis.daily_allowance:,}円/日",
            f"  現在の日平均: {analysis.daily_pace:,}円/日",
            f"  このペースの月末予測: {analysis.projected_total:,}円 (予算比 {projected_percent}%)",
        ])

    category_lines = []
    for change in analysis.category_changes:
        percent = change.change_percent
        percent_text = f"{percent}%" if percent is not None else ("+∞" if change.current else "0")
        category_lines.append(
            f"・{change.category}: {change.current:,}円 "
            f"({previous}: {change.previous:,}円, 変動: {_signed(change.difference)}円, {percent_text})"
        )

    top_lines = [
        f"  {rank}位: {total.category} {total.amount:,}円 "
        f"(全体の{rounded_percent(total.amount, analysis.current_expense) or 0}%)"
        for rank, total in enumerate(analysis.top_categories, start=1)
    ]
    daily_lines = [f"  {day.label}: {day.amount:,}円" for day in analysis.daily_totals]

    data = "\n".join([
        "以下の家計データから分析レポートを作成してください。",
        "",
        progress,
        pace,
        "",
        f"■ カテゴリ別支出（{current} vs {previous}）",
        "\n".join(category_lines) or "記録なし",
        "",
        f"■ 支出額ランキング（{current}）",
        "\n".join(top_lines) or "  データなし",
        "",
        f"■ 日別支出推移（{current}）",
        "\n".join(daily_lines) or "  記録なし",
        "",
        "■ 合計",
        f"  {current}: {analysis.current_expense:,}円",
        f"  {previous}: {analysis.previous_expense:,}円",
        f"  増減: {_signed(analysis.expense_change)}円",
    ])
    return f"{ANALYST_INSTRUCTIONS}\n\n{data}"


def build_advice_prompt(snapshot: AggregationSnapshot) -> str:
    """Short, friendly advice prompt for the current month."""
    category_lines = "\n".join(
        f"・{total.category}: {total.amount:,}円"
        for total in snapshot.category_totals
        if total.amount > 0
    ) or "・記録なし"
    budget = snapshot.budget or 0
    return "\n".join([
        ADVICE_INSTRUCTIONS,
        "",
        f"【データ】（{snapshot.month_label}）",
        f"・今月の予算: {budget:,}円",
        f"・現在の支出合計: {snapshot.total_expense:,}円",
        f"・現在の残額: {budget - snapshot.total_expense:,}円",
        "・カテゴリ別支出:",
        category_lines,
    ])
