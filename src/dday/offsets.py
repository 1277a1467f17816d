"""The D-Day milestone table every client schedule is generated from."""

from __future__ import annotations

from dday.models import OffsetRule

MILESTONE_OFFSETS: tuple[OffsetRule, ...] = (
    OffsetRule("Business License", -21, "Admin"),
    OffsetRule("Residence Visa Arrived", -16, "Admin"),
    OffsetRule("Airport Greeter + Driver", -15, "Coordinator"),
    OffsetRule("Arrival in UAE", -12, "Coordinator"),
    OffsetRule("Residence Visa Approval", -11, "Admin"),
    OffsetRule("Medical Test", -11, "Coordinator"),
    OffsetRule("Biometrics", -9, "Coordinator"),
    OffsetRule("Emirates ID", -8, "Admin"),
    OffsetRule("UAE SIM", -8, "Coordinator"),
    OffsetRule("Personal Bank Account", -7, "Coordinator"),
    OffsetRule("Personal Debit Card", -6, "Coordinator"),
    OffsetRule("Company Bank/Card Application", -5, "Admin"),
    OffsetRule("Departure", 0, "Coordinator"),
)
