import io
import logging
from typing import Optional

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from sqlalchemy.orm import Session

from src.enums import BookingStatus, Channel
from src.models import Booking, Sailing
from src.manifests.schemas import ManifestPassengerRow, SailingManifest
from src.schedules.service import SailingService
from src.schedules.time_policy import TimePolicy

logger = logging.getLogger(__name__)

# Bookings that put someone on the vessel
MANIFEST_STATUSES = (
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
    BookingStatus.BOARDED,
    BookingStatus.COMPLETED,
)

MANIFEST_COLUMNS = [
    ("seq", "#"),
    ("ticket_number", "Ticket"),
    ("reference", "Reference"),
    ("passenger_name", "Passenger"),
    ("fare_category", "Fare"),
    ("address", "Address"),
    ("contact", "Contact"),
    ("source", "Source"),
    ("status", "Status"),
]

def manifest_serial_number(sailing: Sailing) -> str:
    return f"MAN-{sailing.departure_date.strftime('%Y%m%d')}-{sailing.id:06d}"

class ManifestService:
    """Passenger manifest of a sailing and its CSV/PDF exports"""

    def __init__(self, db: Session, time_policy: Optional[TimePolicy] = None):
        self.db = db
        self.time_policy = time_policy or TimePolicy()
        self.sailings = SailingService(db, self.time_policy)

    def build(self, sailing_id: int) -> SailingManifest:
        sailing = self.sailings.get_sailing(sailing_id)
        bookings = (
            self.db.query(Booking)
            .filter(Booking.sailing_id == sailing.id)
            .filter(Booking.status.in_(MANIFEST_STATUSES))
            .order_by(Booking.created_at, Booking.id)
            .all()
        )

        rows = []
        walk_in_named = 0
        for booking in bookings:
            if Channel(booking.channel) == Channel.WALK_IN:
                walk_in_named += booking.passenger_count
            for passenger in booking.passengers:
                rows.append(ManifestPassengerRow(
                    seq=len(rows) + 1,
                    ticket_number=passenger.ticket_number or booking.reference,
                    reference=booking.reference,
                    passenger_name=passenger.full_name or "-",
                    fare_category=passenger.fare_category,
                    address=booking.contact_address,
                    contact=booking.contact_mobile,
                    source=booking.channel,
                    status=booking.status,
                    checked_in_at=passenger.checked_in_at or booking.checked_in_at,
                    boarded_at=passenger.boarded_at or booking.boarded_at,
                ))

        availability = self.sailings.allocator.availability(sailing.id)
        walk_in_unnamed = max(0, availability.walk_in.booked - walk_in_named)
        route = sailing.route
        return SailingManifest(
            serial_number=manifest_serial_number(sailing),
            sailing_id=sailing.id,
            vessel_name=sailing.vessel_name,
            route_name=route.display_name if route else None,
            departure_date=sailing.departure_date,
            departure_time=sailing.departure_time,
            online_quota=availability.online.quota,
            online_booked=availability.online.booked,
            walk_in_quota=availability.walk_in.quota,
            walk_in_booked=availability.walk_in.booked,
            passengers=rows,
            total_listed=len(rows),
            walk_in_unnamed=walk_in_unnamed,
            total_passengers=len(rows) + walk_in_unnamed,
            generated_at=self.time_policy.now(),
        )

    def to_dataframe(self, manifest: SailingManifest) -> pd.DataFrame:
        data = [row.model_dump(mode="json") for row in manifest.passengers]
        df = pd.DataFrame(data, columns=[name for name, _ in MANIFEST_COLUMNS])
        return df.rename(columns=dict(MANIFEST_COLUMNS))

    def export_csv(self, manifest: SailingManifest) -> bytes:
        output = io.StringIO()
        self.to_dataframe(manifest).to_csv(output, index=False)
        return output.getvalue().encode()

    def export_pdf(self, manifest: SailingManifest) -> bytes:
        """Printable A4 landscape manifest"""
        output = io.BytesIO()
        doc = SimpleDocTemplate(output, pagesize=landscape(A4))
        styles = getSampleStyleSheet()
        story = []

        story.append(Paragraph("Passenger Manifest", styles['Title']))
        story.append(Paragraph(manifest.serial_number, styles['Normal']))
        story.append(Spacer(1, 12))

        header_info = [
            ["Vessel:", manifest.vessel_name or "-"],
            ["Route:", manifest.route_name or "-"],
            ["Departure:", f"{manifest.departure_date.isoformat()} {manifest.departure_time.strftime('%H:%M')}"],
            ["Passengers:", f"{manifest.total_passengers} ({manifest.total_listed} listed, {manifest.walk_in_unnamed} walk-in unnamed)"],
        ]
        header_table = Table(header_info, colWidths=[100, 400])
        header_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        story.append(header_table)
        story.append(Spacer(1, 12))

        df = self.to_dataframe(manifest).fillna("-")
        passenger_data = [list(df.columns)] + [[str(v) for v in row] for row in df.itertuples(index=False)]
        passenger_table = Table(passenger_data, repeatRows=1)
        passenger_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
        ]))
        story.append(passenger_table)

        doc.build(story)
        logger.info("Manifest %s exported with %s passengers", manifest.serial_number, manifest.total_passengers)
        return output.getvalue()
