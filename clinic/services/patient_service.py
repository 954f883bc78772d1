from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..models.patient import Patient

logger = logging.getLogger(__name__)

class PatientService:
    def __init__(self, db: Session):
        self.db = db

    def verify(
        self,
        aadhar: Optional[str],
        phone: Optional[str],
        name: Optional[str] = None,
    ) -> Optional[Patient]:
        """Find a patient by aadhar, then phone, creating one if neither matches.

        Patients self-attest; nothing here rejects an unknown identity. Without
        an aadhar or phone there is nothing to match on later, so no record is
        stored and ``None`` is returned.
        """
        if not (aadhar or phone):
            return None

        patient = None
        if aadhar:
            patient = self.db.query(Patient).filter(Patient.aadhar == aadhar).first()
        if not patient and phone:
            patient = self.db.query(Patient).filter(Patient.phone == phone).first()

        if patient:
            if name and not patient.name:
                patient.name = name
                self.db.commit()
            return patient

        patient = Patient(name=name, aadhar=aadhar, phone=phone)
        self.db.add(patient)
        self.db.commit()
        self.db.refresh(patient)
        logger.info(f"Created patient record {patient.id}")
        return patient
