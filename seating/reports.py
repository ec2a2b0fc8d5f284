from collections import defaultdict

from seating.models import PrimaryStyle

STYLE_KEYS = [s.value for s in PrimaryStyle]


def _empty_counts():
    counts = {key: 0 for key in STYLE_KEYS}
    counts["unknown"] = 0
    return counts


def diversity_score(counts):
    """Simpson's diversity index over assessed students, rounded to 2 places.

    1 means an even mix of styles, 0 means everyone shares one style. Fewer
    than two assessed students score 0.
    """

    known = sum(counts[key] for key in STYLE_KEYS)
    if known < 2:
        return 0.0
    return round(1 - sum((counts[key] / known) ** 2 for key in STYLE_KEYS), 2)


def _count(student_ids, styles):
    counts = _empty_counts()
    for sid in student_ids:
        profile = styles.get(sid)
        primary = profile.primary if profile else None
        counts[primary.value if primary else "unknown"] += 1
    return counts


def learning_style_distribution(students, learning_styles):
    styles = {ls.student_id: ls for ls in learning_styles}
    ids = [s.id for s in students]
    counts = _count(ids, styles)

    return {
        "totals": counts,
        "total_students": len(ids),
        "assessed_count": len(ids) - counts["unknown"],
        "diversity_score": diversity_score(counts),
    }


def table_distribution(assignments, learning_styles):
    styles = {ls.student_id: ls for ls in learning_styles}
    by_table = defaultdict(list)
    for a in assignments:
        by_table[a.table_number].append(a.student_id)

    report = []
    for table_number in sorted(by_table):
        counts = _count(by_table[table_number], styles)
        report.append({
            "table_number": table_number,
            "label": "Overflow" if table_number == 0 else f"Table {table_number}",
            "counts": counts,
            "diversity_score": diversity_score(counts),
            "is_diverse": sum(1 for key in STYLE_KEYS if counts[key] > 0) >= 2,
        })
    return report
