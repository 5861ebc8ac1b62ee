"""
사이즈 추천 서비스

고객 신체 치수와 사이즈표(치수별 [min, max] 범위)를 비교해 가장 잘 맞는 사이즈를 고릅니다.

점수 계산:
- 범위 안(경계 포함)이면 1.0
- 범위 밖이면 벗어난 거리에 비례해 선형 감소, 0 미만은 0
- 사이즈 신뢰도 = 비교 가능한 항목 점수의 평균
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fitting_portal.models import BodyMeasurements, SizeChart, SizeRecommendation
from fitting_portal.services import customer_service

logger = logging.getLogger(__name__)

SIZE_ORDER: tuple[str, ...] = ("XXS", "XS", "S", "M", "L", "XL", "XXL", "XXXL")

_TOP_FIELDS = ("chest_width", "overall_width", "sleeve_width", "top_length")
_BOTTOM_FIELDS = ("waist", "hip", "rise", "thigh_width", "bottom_length")

RELEVANT_FIELDS: dict[str, tuple[str, ...]] = {
    "top": _TOP_FIELDS,
    "shirt": _TOP_FIELDS,
    "blouse": _TOP_FIELDS,
    "bottom": _BOTTOM_FIELDS,
    "pants": _BOTTOM_FIELDS,
    "jeans": _BOTTOM_FIELDS,
    "dress": ("chest_width", "waist", "hip", "top_length"),
}
DEFAULT_FIELDS: tuple[str, ...] = ("chest_width", "waist", "hip")


@dataclass
class FieldScore:
    user_value: float
    size_range: tuple[float, float]
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"userValue": self.user_value, "sizeRange": list(self.size_range), "score": self.score}


@dataclass
class SizeMatch:
    size: str
    confidence: float
    measurements: dict[str, FieldScore] = field(default_factory=dict)

    def details(self) -> dict[str, Any]:
        return {
            "measurements": {name: fs.to_dict() for name, fs in self.measurements.items()},
            "overallScore": self.confidence,
        }


@dataclass
class RecommendationResult:
    product_type: str
    recommended_size: str
    confidence: float
    alternative_sizes: list[str]
    brand: str
    collection: str | None
    reasoning: str
    size_chart_id: str
    match_details: dict[str, Any]

    def to_response(self) -> dict[str, Any]:
        return {
            "productType": self.product_type,
            "recommendedSize": self.recommended_size,
            "confidence": self.confidence,
            "alternativeSizes": self.alternative_sizes,
            "brand": self.brand,
            "collection": self.collection,
            "reasoning": self.reasoning,
            "sizeChartId": self.size_chart_id,
            "matchDetails": self.match_details,
        }


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def relevant_measurements(measurements: dict[str, float | None], product_type: str) -> dict[str, float]:
    """상품 유형별로 비교에 쓸 치수만 추립니다. 값이 없거나 0 이하인 항목은 제외."""
    fields = RELEVANT_FIELDS.get((product_type or "").strip().lower(), DEFAULT_FIELDS)
    relevant: dict[str, float] = {}
    for name in fields:
        value = measurements.get(name)
        if value is not None and value > 0:
            relevant[name] = float(value)
    return relevant


def score_field(value: float, low: float, high: float) -> float:
    if low <= value <= high:
        return 1.0
    if value < low:
        if low <= 0:
            return 0.0
        return max(0.0, 1 - ((low - value) / low) * 2)
    if high <= 0:
        return 0.0
    return max(0.0, 1 - ((value - high) / high) * 2)


def _parse_range(raw: Any) -> tuple[float, float] | None:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        return None
    low, high = raw
    if isinstance(low, bool) or isinstance(high, bool):
        return None
    if not isinstance(low, (int, float)) or not isinstance(high, (int, float)):
        return None
    return float(low), float(high)


def _lookup_range(size_ranges: dict[str, Any], name: str) -> tuple[float, float] | None:
    raw = size_ranges.get(to_camel(name))
    if raw is None:
        raw = size_ranges.get(name)
    return _parse_range(raw)


def calculate_size_match(user_measurements: dict[str, float], size_ranges: dict[str, Any], size_name: str) -> SizeMatch:
    scores: dict[str, FieldScore] = {}
    for name, value in user_measurements.items():
        size_range = _lookup_range(size_ranges, name)
        if size_range is None:
            continue
        low, high = size_range
        scores[to_camel(name)] = FieldScore(user_value=value, size_range=(low, high), score=score_field(value, low, high))

    confidence = sum(fs.score for fs in scores.values()) / len(scores) if scores else 0.0
    return SizeMatch(size=size_name, confidence=confidence, measurements=scores)


def ordered_sizes(sizes: dict[str, Any]) -> list[tuple[str, Any]]:
    """
    SIZE_ORDER 순(작은 사이즈 먼저)으로 정렬, 목록에 없는 사이즈는 저장 순서대로 뒤에 둡니다.
    JSONB 는 키 순서를 보존하지 않으므로 DB 와 무관하게 순서를 고정하기 위함.
    """
    def rank(item: tuple[int, tuple[str, Any]]) -> tuple[int, int]:
        position, (name, _) = item
        upper = str(name).upper()
        return (SIZE_ORDER.index(upper) if upper in SIZE_ORDER else len(SIZE_ORDER), position)

    return [pair for _, pair in sorted(enumerate(sizes.items()), key=rank)]


def find_best_size_match(user_measurements: dict[str, float], sizes: dict[str, Any]) -> SizeMatch | None:
    """동점이면 먼저(더 작은 사이즈) 나온 쪽을 유지합니다."""
    if not isinstance(sizes, dict) or not user_measurements:
        return None

    best: SizeMatch | None = None
    for size_name, size_ranges in ordered_sizes(sizes):
        if not isinstance(size_ranges, dict):
            continue
        match = calculate_size_match(user_measurements, size_ranges, size_name)
        if not match.measurements:
            continue
        if best is None or match.confidence > best.confidence:
            best = match
    return best


def alternative_sizes(sizes: Iterable[str], recommended_size: str) -> list[str]:
    """정렬된 사이즈 목록에서 바로 작은/큰 사이즈 (사이즈표에 있는 것만)."""
    upper = recommended_size.upper()
    if upper not in SIZE_ORDER:
        return []
    idx = SIZE_ORDER.index(upper)

    candidates: list[str] = []
    if idx > 0:
        candidates.append(SIZE_ORDER[idx - 1])
    if idx < len(SIZE_ORDER) - 1:
        candidates.append(SIZE_ORDER[idx + 1])

    available = {s.upper() for s in sizes}
    return [c for c in candidates if c in available]


def generate_reasoning(confidence: float) -> str:
    pct = round(confidence * 100)
    if pct >= 90:
        return f"Excellent fit based on your measurements ({pct}% confidence)"
    if pct >= 75:
        return f"Good fit for most of your measurements ({pct}% confidence)"
    if pct >= 60:
        return f"Reasonable fit, but consider trying multiple sizes ({pct}% confidence)"
    return f"Limited data available for accurate recommendation ({pct}% confidence)"


class SizeRecommendationService:
    def __init__(self, session: Session):
        self.session = session

    def get_size_charts(self, product_type: str, brand: str | None = None, collection: str | None = None) -> list[SizeChart]:
        stmt = (
            select(SizeChart)
            .where(SizeChart.is_active.is_(True))
            .where(func.lower(SizeChart.product_type) == product_type.strip().lower())
            .order_by(SizeChart.brand.asc(), SizeChart.created_at.asc())
        )
        if brand:
            stmt = stmt.where(func.lower(SizeChart.brand) == brand.strip().lower())
            if collection:
                stmt = stmt.where(func.lower(SizeChart.collection) == collection.strip().lower())
        return list(self.session.scalars(stmt).all())

    def get_recommendation(
        self,
        customer_email: str,
        product_type: str,
        brand: str | None = None,
        collection: str | None = None,
    ) -> RecommendationResult | None:
        measurements: BodyMeasurements | None = customer_service.get_measurements(self.session, customer_email)
        if measurements is None:
            logger.info(f"No measurements found for customer {customer_email}")
            return None

        user_values = relevant_measurements(measurements.as_dict(), product_type)
        if not user_values:
            logger.info(f"No relevant measurements for {customer_email} / {product_type}")
            return None

        charts = self.get_size_charts(product_type, brand, collection)
        if not charts:
            logger.info(f"No size charts found for product_type={product_type} brand={brand} collection={collection}")
            return None

        best_chart: SizeChart | None = None
        best_match: SizeMatch | None = None
        for chart in charts:
            match = find_best_size_match(user_values, chart.sizes)
            if match and (best_match is None or match.confidence > best_match.confidence):
                best_chart, best_match = chart, match

        if best_chart is None or best_match is None:
            return None

        details = best_match.details()
        self.session.add(
            SizeRecommendation(
                customer_email=customer_email,
                size_chart_id=best_chart.id,
                recommended_size=best_match.size,
                confidence=best_match.confidence,
                product_type=product_type,
                measurement_data=details,
            )
        )
        self.session.flush()

        return RecommendationResult(
            product_type=product_type,
            recommended_size=best_match.size,
            confidence=best_match.confidence,
            alternative_sizes=alternative_sizes(best_chart.sizes.keys(), best_match.size),
            brand=best_chart.brand,
            collection=best_chart.collection,
            reasoning=generate_reasoning(best_match.confidence),
            size_chart_id=str(best_chart.id),
            match_details=details,
        )

    def get_history(self, customer_email: str, product_type: str | None = None) -> list[SizeRecommendation]:
        stmt = select(SizeRecommendation).where(SizeRecommendation.customer_email == customer_email)
        if product_type:
            stmt = stmt.where(func.lower(SizeRecommendation.product_type) == product_type.strip().lower())
        stmt = stmt.order_by(SizeRecommendation.created_at.desc())
        return list(self.session.scalars(stmt).unique().all())

    def create_size_chart(
        self,
        brand: str,
        collection: str | None,
        product_type: str,
        sizes: dict[str, dict[str, list[float]]],
    ) -> SizeChart:
        chart = SizeChart(brand=brand, collection=collection, product_type=product_type, sizes=sizes, is_active=True)
        self.session.add(chart)
        self.session.flush()
        return chart


DEFAULT_SIZE_CHARTS: list[dict[str, Any]] = [
    {
        "brand": "Generic",
        "collection": None,
        "product_type": "top",
        "sizes": {
            "XS": {"chestWidth": [80, 85], "overallWidth": [85, 90], "sleeveWidth": [30, 32], "topLength": [58, 62]},
            "S": {"chestWidth": [85, 90], "overallWidth": [90, 95], "sleeveWidth": [32, 34], "topLength": [60, 64]},
            "M": {"chestWidth": [90, 95], "overallWidth": [95, 100], "sleeveWidth": [34, 36], "topLength": [62, 66]},
            "L": {"chestWidth": [95, 100], "overallWidth": [100, 105], "sleeveWidth": [36, 38], "topLength": [64, 68]},
            "XL": {"chestWidth": [100, 105], "overallWidth": [105, 110], "sleeveWidth": [38, 40], "topLength": [66, 70]},
        },
    },
    {
        "brand": "Generic",
        "collection": None,
        "product_type": "bottom",
        "sizes": {
            "XS": {"waist": [60, 65], "hip": [85, 90], "rise": [20, 22], "thighWidth": [50, 52], "bottomLength": [100, 105]},
            "S": {"waist": [65, 70], "hip": [90, 95], "rise": [22, 24], "thighWidth": [52, 54], "bottomLength": [102, 107]},
            "M": {"waist": [70, 75], "hip": [95, 100], "rise": [24, 26], "thighWidth": [54, 56], "bottomLength": [104, 109]},
            "L": {"waist": [75, 80], "hip": [100, 105], "rise": [26, 28], "thighWidth": [56, 58], "bottomLength": [106, 111]},
            "XL": {"waist": [80, 85], "hip": [105, 110], "rise": [28, 30], "thighWidth": [58, 60], "bottomLength": [108, 113]},
        },
    },
]


def seed_default_size_charts(session: Session) -> int:
    """같은 brand/product_type 사이즈표가 없을 때만 기본 사이즈표를 추가합니다."""
    created = 0
    service = SizeRecommendationService(session)
    for chart in DEFAULT_SIZE_CHARTS:
        exists = session.execute(
            select(SizeChart.id)
            .where(SizeChart.brand == chart["brand"])
            .where(SizeChart.product_type == chart["product_type"])
            .limit(1)
        ).first()
        if exists:
            logger.debug(f"Size chart already exists: {chart['brand']} - {chart['product_type']}")
            continue
        service.create_size_chart(chart["brand"], chart["collection"], chart["product_type"], chart["sizes"])
        created += 1
    return created
