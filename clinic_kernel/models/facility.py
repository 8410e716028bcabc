"""
Module: clinic_kernel.models.facility
Responsibility: ORM persistence for facility rows read by the dashboard.
"""

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase
from clinic_kernel.domain.aggregation import Facility
from clinic_kernel.domain.statuses import raw_value


class FacilityModel(TrackedBase):
    """Maps to: clinic_kernel.domain.aggregation.Facility."""

    __tablename__ = "facilities"

    __table_args__ = (
        Index("idx_facility_sector_category", "sector", "category"),
    )

    name: Mapped[str] = mapped_column(String(300))
    code: Mapped[str] = mapped_column(String(100), default="")
    sector: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(200), default="")
    facility_type: Mapped[str] = mapped_column(String(200), default="")
    status: Mapped[str] = mapped_column(String(50))
    total_clinics: Mapped[int] = mapped_column(Integer, default=0)
    working_clinics: Mapped[int] = mapped_column(Integer, default=0)
    out_of_order_clinics: Mapped[int] = mapped_column(Integer, default=0)
    not_working_clinics: Mapped[int] = mapped_column(Integer, default=0)

    def to_dto(self) -> Facility:
        return Facility(
            id=self.id,
            name=self.name,
            sector=self.sector,
            category=self.category or "",
            status=self.status,
            total_clinics=self.total_clinics or 0,
            working_clinics=self.working_clinics or 0,
            out_of_order_clinics=self.out_of_order_clinics or 0,
            not_working_clinics=self.not_working_clinics or 0,
            facility_type=self.facility_type or "",
            code=self.code or "",
        )

    def apply(self, dto: Facility) -> None:
        """Copy every field of ``dto`` onto this row."""
        self.name = dto.name
        self.code = dto.code
        self.sector = dto.sector
        self.category = dto.category
        self.facility_type = dto.facility_type
        self.status = raw_value(dto.status)
        self.total_clinics = dto.total_clinics
        self.working_clinics = dto.working_clinics
        self.out_of_order_clinics = dto.out_of_order_clinics
        self.not_working_clinics = dto.not_working_clinics

    @classmethod
    def from_dto(cls, dto: Facility) -> "FacilityModel":
        model = cls(id=dto.id)
        model.apply(dto)
        return model

    def __repr__(self) -> str:
        return f"<FacilityModel {self.id} {self.name} sector={self.sector}>"
