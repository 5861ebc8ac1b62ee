from datetime import date, datetime
import uuid

from sqlalchemy import Boolean, Date, DateTime, Enum, Float, ForeignKey, Integer, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from fitting_portal.services.photo_status import PhotoStatus


class Base(DeclarativeBase):
    pass


MEASUREMENT_FIELDS: tuple[str, ...] = (
    "chest_width",
    "overall_width",
    "sleeve_width",
    "top_length",
    "waist",
    "hip",
    "rise",
    "thigh_width",
    "bottom_length",
)


class Customer(Base):
    """
    고객 프로필. 이메일이 식별 키이며 upsert로만 생성/갱신합니다 (삭제 없음).
    """
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    shopify_customer_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hobbies: Mapped[str | None] = mapped_column(Text, nullable=True)
    occupation: Mapped[str | None] = mapped_column(Text, nullable=True)
    usual_size: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_fields: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    body_measurements: Mapped["BodyMeasurements | None"] = relationship(
        back_populates="customer", uselist=False, lazy="selectin"
    )


class Photo(Base):
    __tablename__ = "photos"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_email: Mapped[str] = mapped_column(Text, ForeignKey("customers.email"), nullable=False, index=True)
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    original_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[PhotoStatus] = mapped_column(
        Enum(PhotoStatus, native_enum=False, length=16, name="photo_status"),
        nullable=False,
        default=PhotoStatus.PENDING,
        index=True,
    )
    is_virtual_fitting_photo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # 웹훅 전달 기록
    webhook_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    webhook_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class BodyMeasurements(Base):
    """
    고객 신체 치수 (cm). 고객과 이메일 기준 1:1이며 저장 시 레코드 전체를 덮어씁니다.
    """
    __tablename__ = "body_measurements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_email: Mapped[str] = mapped_column(Text, ForeignKey("customers.email"), nullable=False, unique=True)
    chest_width: Mapped[float | None] = mapped_column(Float, nullable=True)
    overall_width: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleeve_width: Mapped[float | None] = mapped_column(Float, nullable=True)
    top_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    waist: Mapped[float | None] = mapped_column(Float, nullable=True)
    hip: Mapped[float | None] = mapped_column(Float, nullable=True)
    rise: Mapped[float | None] = mapped_column(Float, nullable=True)
    thigh_width: Mapped[float | None] = mapped_column(Float, nullable=True)
    bottom_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    customer: Mapped[Customer] = relationship(back_populates="body_measurements")

    def as_dict(self) -> dict[str, float | None]:
        return {name: getattr(self, name) for name in MEASUREMENT_FIELDS}


class SizeChart(Base):
    """
    브랜드/컬렉션/상품유형별 사이즈표.
    sizes 구조: {"M": {"waist": [70, 75], "hip": [95, 100]}, ...}
    """
    __tablename__ = "size_charts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    brand: Mapped[str] = mapped_column(Text, nullable=False)
    collection: Mapped[str | None] = mapped_column(Text, nullable=True)
    product_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    sizes: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class SizeRecommendation(Base):
    """사이즈 추천 결과 감사 로그 (append-only)."""
    __tablename__ = "size_recommendations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_email: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    size_chart_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("size_charts.id"), nullable=False)
    recommended_size: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    product_type: Mapped[str] = mapped_column(Text, nullable=False)
    measurement_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    size_chart: Mapped[SizeChart] = relationship(lazy="joined")


class ShopifyOrder(Base):
    __tablename__ = "shopify_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shopify_order_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    customer_email: Mapped[str] = mapped_column(Text, ForeignKey("customers.email"), nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(Text, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(Text, nullable=False)
    order_status: Mapped[str] = mapped_column(Text, nullable=False)
    fulfillment_status: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    order_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
