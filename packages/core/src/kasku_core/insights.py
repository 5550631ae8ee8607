"""Deterministic insight templates used when no language model answers."""

from collections.abc import Sequence
from decimal import Decimal

from kasku_core.formatting import format_percentage, format_rupiah
from kasku_core.models import InsightResult, KeyNumber, MonthlyStats
from kasku_core.sanitizer import sanitize_html

KEY_NUMBERS_HEADER = "Angka Kunci"
HIGH_EXPENSE_SHARE = Decimal("0.8")


def build_fallback_key_numbers(stats: MonthlyStats) -> list[KeyNumber]:
    ratio = format_percentage(stats.expense_to_income_ratio)
    saving_rate = format_percentage(stats.saving_rate)

    return [
        KeyNumber(
            label="Total Pemasukan",
            value=format_rupiah(stats.total_income),
            insight="menjadi basis kapasitas belanja dan tabungan",
        ),
        KeyNumber(
            label="Total Pengeluaran",
            value=format_rupiah(stats.total_expense),
            insight=f"rasio terhadap pemasukan saat ini {ratio}",
        ),
        KeyNumber(
            label="Saldo Bersih",
            value=format_rupiah(stats.balance),
            insight=(
                f"saving rate {saving_rate}"
                if stats.balance >= 0
                else "arus kas negatif, perlu koreksi pengeluaran"
            ),
        ),
    ]


def build_fallback_insight(stats: MonthlyStats) -> InsightResult:
    """
    Build the template insight for a month.

    The summary and trend switch between a positive and a stressed reading
    on the sign of the balance. Recommendations are three or four items:
    a variable-cost cut or a savings habit, a weekly cap, efficiency in the
    largest category when there is one, and surplus allocation or deficit
    recovery.
    """
    income_text = format_rupiah(stats.total_income)
    expense_text = format_rupiah(stats.total_expense)
    balance_text = format_rupiah(stats.balance)
    deficit_text = format_rupiah(abs(stats.balance))
    first_half_text = format_rupiah(stats.first_half_expense)
    second_half_text = format_rupiah(stats.second_half_expense)
    ratio_text = format_percentage(stats.expense_to_income_ratio)
    saving_rate_text = format_percentage(stats.saving_rate)
    healthy = stats.balance >= 0

    recommendations = []
    if stats.total_income > 0 and stats.total_expense > stats.total_income * HIGH_EXPENSE_SHARE:
        recommendations.append(
            "<strong>Kurangi pengeluaran variabel</strong> minimal <u>15%</u> selama "
            f"<u>30 hari</u> agar rasio pengeluaran turun dari <strong>{ratio_text}</strong>."
        )
    else:
        recommendations.append(
            "<strong>Pertahankan tabungan otomatis</strong> minimal <u>20%</u> dari "
            "pemasukan bulanan untuk menjaga saving rate di atas "
            f"<strong>{saving_rate_text}</strong>."
        )

    recommendations.append(
        "<strong>Terapkan batas belanja mingguan</strong> dan lakukan evaluasi realisasi "
        "setiap akhir pekan agar risiko <em>overbudget</em> menurun."
    )

    if stats.top_expense_categories:
        top = stats.top_expense_categories[0]
        recommendations.append(
            f"<strong>Prioritaskan efisiensi kategori {top.category}</strong> karena "
            f"porsinya paling besar ({format_rupiah(top.amount)}). Targetkan penghematan "
            "bertahap <u>10%-15%</u> di kategori ini."
        )

    if healthy:
        recommendations.append(
            f"<strong>Alokasikan minimal 40%</strong> dari surplus ({balance_text}) ke dana "
            "darurat atau instrumen berisiko rendah."
        )
    else:
        recommendations.append(
            "<strong>Lakukan recovery arus kas</strong> dengan target menutup defisit "
            f"{deficit_text} dalam <u>1 bulan</u> berikutnya."
        )

    if healthy:
        summary = (
            f"<p>Pada <strong>{stats.month}</strong>, kondisi keuangan kamu "
            "<strong>positif</strong>.</p>"
            f"<p>Total pemasukan <strong>{income_text}</strong>, total pengeluaran "
            f"<strong>{expense_text}</strong>, sehingga saldo akhir "
            f"<strong>{balance_text}</strong>.</p>"
            f"<p>Rasio pengeluaran terhadap pemasukan berada di <strong>{ratio_text}</strong> "
            f"dengan saving rate <strong>{saving_rate_text}</strong>.</p>"
        )
        trend = (
            f"<p>Pengeluaran paruh awal tercatat <strong>{first_half_text}</strong> dan "
            f"paruh akhir <strong>{second_half_text}</strong>.</p>"
            "<p>Tren masih sehat, namun disiplin eksekusi anggaran tetap diperlukan agar "
            "surplus konsisten di bulan berikutnya.</p>"
        )
    else:
        summary = (
            f"<p>Pada <strong>{stats.month}</strong>, kondisi keuangan kamu sedang "
            "<strong>tertekan</strong>.</p>"
            f"<p>Total pemasukan <strong>{income_text}</strong>, total pengeluaran "
            f"<strong>{expense_text}</strong>, dan terjadi defisit "
            f"<strong>{deficit_text}</strong>.</p>"
            f"<p>Rasio pengeluaran mencapai <strong>{ratio_text}</strong>, menandakan "
            "kebutuhan kontrol biaya yang lebih ketat.</p>"
        )
        trend = (
            f"<p>Pengeluaran paruh awal tercatat <strong>{first_half_text}</strong> dan "
            f"paruh akhir <strong>{second_half_text}</strong>.</p>"
            "<p>Tren menunjukkan tekanan arus kas, sehingga prioritas utama adalah memangkas "
            "pengeluaran variabel dan meningkatkan porsi tabungan.</p>"
        )

    return InsightResult(
        summary=sanitize_html(summary),
        recommendations=[sanitize_html(item) for item in recommendations],
        trend_analysis=sanitize_html(trend),
        key_numbers=build_fallback_key_numbers(stats),
    )


def append_key_numbers_to_summary(summary: str, key_numbers: Sequence[KeyNumber]) -> str:
    """
    Append a sanitized "Angka Kunci" list to a summary.

    Items without a label or value are skipped; the summary is returned
    sanitized and unchanged when nothing remains.
    """
    safe_summary = sanitize_html(summary)

    items = []
    for number in key_numbers:
        label = sanitize_html(number.label)
        value = sanitize_html(number.value)
        insight = sanitize_html(number.insight)
        if not label or not value:
            continue
        suffix = f" <em>({insight})</em>" if insight else ""
        items.append(f"<li><strong>{label}:</strong> {value}{suffix}</li>")

    if not items:
        return safe_summary

    return (
        f"{safe_summary}<p><strong>{KEY_NUMBERS_HEADER}</strong></p>"
        f"<ul>{''.join(items)}</ul>"
    )


__all__ = [
    "KEY_NUMBERS_HEADER",
    "build_fallback_key_numbers",
    "build_fallback_insight",
    "append_key_numbers_to_summary",
]
