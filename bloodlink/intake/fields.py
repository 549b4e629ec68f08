"""
Field Catalog: static descriptors for every collectible blood request field.

One ``FieldDescriptor`` per field: which stage collects it, how it is
extracted and validated, what we ask the requester, and the safe default
used when a previously accepted value no longer validates at commit time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional

from bloodlink.intake.extractors import (
    BLOOD_TYPES,
    extract_bag_count,
    extract_blood_type,
    extract_date,
    extract_hemoglobin,
    extract_hospital_name,
    extract_location,
    extract_patient_problem,
    extract_zone,
    format_date,
)
from bloodlink.intake.validators import (
    validate_blood_bags,
    validate_date,
    validate_hemoglobin,
    validate_time,
)


class Stage(str, Enum):
    INITIAL = "initial"
    BLOOD_TYPE = "bloodType"
    HOSPITAL = "hospital"
    LOCATION = "location"
    ZONE = "zone"
    PATIENT_PROBLEM = "patientProblem"
    BAG_NEEDED = "bagNeeded"
    DATE = "date"
    TIME = "time"
    HEMOGLOBIN_POINT = "hemoglobinPoint"
    ADDITIONAL_INFO = "additionalInfo"
    CONFIRMATION = "confirmation"


# Linear progression.  BLOOD_TYPE is a re-ask of INITIAL and rejoins at HOSPITAL.
NEXT_STAGE: dict[Stage, Stage] = {
    Stage.INITIAL: Stage.HOSPITAL,
    Stage.BLOOD_TYPE: Stage.HOSPITAL,
    Stage.HOSPITAL: Stage.LOCATION,
    Stage.LOCATION: Stage.ZONE,
    Stage.ZONE: Stage.PATIENT_PROBLEM,
    Stage.PATIENT_PROBLEM: Stage.BAG_NEEDED,
    Stage.BAG_NEEDED: Stage.DATE,
    Stage.DATE: Stage.TIME,
    Stage.TIME: Stage.HEMOGLOBIN_POINT,
    Stage.HEMOGLOBIN_POINT: Stage.ADDITIONAL_INFO,
    Stage.ADDITIONAL_INFO: Stage.CONFIRMATION,
}

NOT_SPECIFIED = "Not specified"

BLOOD_TYPE_CHOICES = ", ".join(BLOOD_TYPES[:-1]) + f", or {BLOOD_TYPES[-1]}"


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    stage: Stage
    label: str
    extractor: Callable[[str], Optional[str]]
    prompt: str
    acknowledgement: str
    reprompt: str
    validator: Optional[Callable[[str], bool]] = None
    invalid_prompt: Optional[str] = None
    default: Optional[Callable[[date], str]] = None
    required: bool = True

    def acknowledge(self, value: str) -> str:
        return self.acknowledgement.format(value=value)


FIELDS: dict[str, FieldDescriptor] = {
    d.name: d
    for d in (
        FieldDescriptor(
            name="blood_type",
            stage=Stage.INITIAL,
            label="Blood Type",
            extractor=extract_blood_type,
            prompt=(
                "What blood type do you need? "
                f"Please specify one of the following: {BLOOD_TYPE_CHOICES}."
            ),
            acknowledgement="Great! You need {value} blood.",
            reprompt=(
                "I need to know what blood type you're looking for. "
                f"Please specify one of the following: {BLOOD_TYPE_CHOICES}."
            ),
            validator=lambda value: value in BLOOD_TYPES,
        ),
        FieldDescriptor(
            name="hospital",
            stage=Stage.HOSPITAL,
            label="Hospital",
            extractor=extract_hospital_name,
            prompt="Now, please tell me the name of the hospital where the blood is needed.",
            acknowledgement="Got it! The hospital is {value}.",
            reprompt="Please provide the name of the hospital where the blood is needed.",
        ),
        FieldDescriptor(
            name="location",
            stage=Stage.LOCATION,
            label="Location",
            extractor=extract_location,
            prompt="Now, please provide the location/address of the hospital.",
            acknowledgement="Thank you! The location is {value}.",
            reprompt="Please provide the location or address of the hospital.",
        ),
        FieldDescriptor(
            name="zone",
            stage=Stage.ZONE,
            label="Zone",
            extractor=extract_zone,
            prompt="What zone or area is this in? (e.g., Dhanmondi, Gulshan, Mirpur)",
            acknowledgement="Got it! The zone is {value}.",
            reprompt="Please provide the zone or area where the hospital is located.",
        ),
        FieldDescriptor(
            name="patient_problem",
            stage=Stage.PATIENT_PROBLEM,
            label="Patient's Condition",
            extractor=extract_patient_problem,
            prompt="What is the patient's medical condition or reason for needing blood?",
            acknowledgement="I understand the patient's condition is: {value}.",
            reprompt=(
                "Please provide information about the patient's condition "
                "or reason for needing blood."
            ),
        ),
        FieldDescriptor(
            name="bag_needed",
            stage=Stage.BAG_NEEDED,
            label="Bags Needed",
            extractor=extract_bag_count,
            prompt="How many bags of blood are needed?",
            acknowledgement="Got it.",
            reprompt=(
                "I couldn't understand how many bags are needed. "
                "Please provide a number (e.g., 2 bags)."
            ),
            validator=validate_blood_bags,
            invalid_prompt=(
                "The number of blood bags you requested seems unusual. "
                "Typically, requests are for 1-10 bags. "
                "Please provide a valid number of bags needed."
            ),
            default=lambda today: "1",
        ),
        FieldDescriptor(
            name="date",
            stage=Stage.DATE,
            label="Date",
            extractor=extract_date,
            prompt=(
                "When is the blood needed? Please provide a date in DD/MM/YYYY "
                "format, or say 'today' or 'tomorrow'."
            ),
            acknowledgement="Thank you.",
            reprompt=(
                "I couldn't understand the date. Please provide a date in "
                "DD/MM/YYYY format, or say 'today' or 'tomorrow'."
            ),
            validator=validate_date,
            invalid_prompt=(
                "The date you provided is either in the past or too far in the "
                "future. Please provide a date that is today or within the next "
                "30 days."
            ),
            default=format_date,
        ),
        FieldDescriptor(
            name="time",
            stage=Stage.TIME,
            label="Time",
            extractor=lambda message: message.strip() or None,
            prompt=(
                "What time is the blood needed? Please provide a time in HH:MM "
                "format (e.g., 14:30) or H:MM AM/PM format (e.g., 2:30 PM)."
            ),
            acknowledgement="Thank you.",
            reprompt=(
                "I couldn't understand the time format. Please provide a time in "
                "HH:MM format (e.g., 14:30) or H:MM AM/PM format (e.g., 2:30 PM)."
            ),
            validator=validate_time,
        ),
        FieldDescriptor(
            name="hemoglobin_point",
            stage=Stage.HEMOGLOBIN_POINT,
            label="Hemoglobin Level",
            extractor=extract_hemoglobin,
            prompt=(
                "If you know, what is the patient's hemoglobin level? "
                "(Type 'skip' if you don't know)"
            ),
            acknowledgement="Thank you.",
            reprompt=(
                "I couldn't understand the hemoglobin level. Please provide a "
                "number (e.g., 12.5) or type 'skip' if you don't know."
            ),
            validator=validate_hemoglobin,
            invalid_prompt=(
                "The hemoglobin level you provided seems unusual. Normal hemoglobin "
                "levels are typically between 7-20 g/dL. Please provide a valid "
                "hemoglobin level or type 'skip' if you don't know."
            ),
            default=lambda today: NOT_SPECIFIED,
            required=False,
        ),
        FieldDescriptor(
            name="additional_info",
            stage=Stage.ADDITIONAL_INFO,
            label="Additional Info",
            extractor=lambda message: message.strip(),
            prompt=(
                "Do you have any additional information about the patient or "
                "the request? (Type 'skip' if none)"
            ),
            acknowledgement="",
            reprompt="",
            default=lambda today: "",
            required=False,
        ),
    )
}

STAGE_FIELDS: dict[Stage, FieldDescriptor] = {d.stage: d for d in FIELDS.values()}
STAGE_FIELDS[Stage.BLOOD_TYPE] = FIELDS["blood_type"]

REQUIRED_FIELDS: list[str] = [d.name for d in FIELDS.values() if d.required]

OPENING_PROMPT = (
    "I'd be happy to help you create a blood request. Let's go through the "
    "process step by step:\n\n"
    "1. What blood type do you need? (A+, A-, B+, B-, AB+, AB-, O+, O-)"
)


def field_for_stage(stage: Stage) -> FieldDescriptor | None:
    return STAGE_FIELDS.get(stage)
