"""MedNext-Healthcare: a provider registers a patient and works through a
clinical visit."""

from __future__ import annotations

from datetime import timedelta

from betasim.core.agent import Agent
from betasim.core.flow import Flow, FlowStep
from betasim.core.models import utc_now
from betasim.exceptions import FlowStateError
from betasim.platforms.base import Platform, adoption_gate, require_state, signup_or_login


def _patient_id(agent: Agent) -> str:
    patients = require_state(agent, "patients")
    if not patients:
        raise FlowStateError("No patients")
    return patients[0]["id"]


async def _signup_or_login(agent: Agent) -> dict:
    return await signup_or_login(
        agent,
        email_domain="test-mednext.local",
        password="TestProvider123!",  # pragma: allowlist secret
        extra={"role": "PROVIDER"},
    )


async def _create_patient(agent: Agent) -> dict:
    name = await agent.generate_realistic_content("patient_name")
    response = await agent.client.post(
        "/api/patients",
        json={"name": name, "dateOfBirth": "1980-01-01", "gender": "M"},
    )
    patient = response.get("patient") if isinstance(response, dict) else None
    if not patient:
        raise FlowStateError("create patient response did not include a patient")
    agent.state.setdefault("patients", []).append(patient)
    agent.logger.info("flow.patient_created", event="flow.patient_created", patient_id=patient.get("id"))
    return patient


async def _schedule_appointment(agent: Agent) -> dict:
    return await agent.client.post(
        "/api/appointments",
        json={
            "patientId": _patient_id(agent),
            "datetime": (utc_now() + timedelta(days=1)).isoformat(),
            "type": "CONSULTATION",
        },
    )


async def _create_clinical_note(agent: Agent) -> dict:
    patient_id = _patient_id(agent)
    note = await agent.generate_realistic_content("clinical_note")
    return await agent.client.post("/api/clinical-notes", json={"patientId": patient_id, "note": note})


async def _order_lab_tests(agent: Agent) -> dict:
    return await agent.client.post(
        "/api/lab-orders",
        json={"patientId": _patient_id(agent), "tests": ["CBC", "CMP", "Lipid Panel"]},
    )


async def _prescribe_medication(agent: Agent) -> dict:
    return await agent.client.post(
        "/api/prescriptions",
        json={"patientId": _patient_id(agent), "medication": "Amoxicillin", "dosage": "500mg", "frequency": "TID"},
    )


async def _view_patient_history(agent: Agent) -> dict:
    return await agent.client.get(f"/api/patients/{_patient_id(agent)}/history")


async def _use_clinical_ai(agent: Agent) -> dict:
    patient_id = _patient_id(agent)
    question = await agent.generate_realistic_content("clinical_question")
    return await agent.client.post("/api/ai-assistant", json={"patientId": patient_id, "question": question})


async def _generate_report(agent: Agent) -> dict:
    patient_id = _patient_id(agent)
    decision = await agent.make_intelligent_decision("Which report format?", ["PDF", "HL7", "FHIR"])
    response = await agent.client.post("/api/reports", json={"patientId": patient_id, "format": decision.chosen})
    agent.logger.info("flow.report_generated", event="flow.report_generated", format=decision.chosen)
    return response


async def _view_analytics(agent: Agent) -> dict:
    return await agent.client.get("/api/analytics")


def _uses_clinical_ai(agent: Agent) -> bool:
    return adoption_gate(agent, beginner=0.5, intermediate=0.5)


FLOW = Flow(
    name="mednext-healthcare",
    steps=(
        FlowStep("signup_or_login", _signup_or_login),
        FlowStep("create_patient", _create_patient),
        FlowStep("schedule_appointment", _schedule_appointment),
        FlowStep("create_clinical_note", _create_clinical_note),
        FlowStep("order_lab_tests", _order_lab_tests),
        FlowStep("prescribe_medication", _prescribe_medication),
        FlowStep("view_patient_history", _view_patient_history),
        FlowStep("use_clinical_ai", _use_clinical_ai, condition=_uses_clinical_ai),
        FlowStep("generate_report", _generate_report),
        FlowStep("view_analytics", _view_analytics),
    ),
)

PLATFORM = Platform(
    name="mednext-healthcare",
    display_name="MedNext-Healthcare",
    env_prefix="MEDNEXT",
    default_base_url="http://localhost:3000",
    flow=FLOW,
    fallback_content={
        "patient_name": "John Doe",
        "clinical_note": "Patient presents with mild symptoms",
        "clinical_question": "Recommend treatment approach",
    },
    generic_fallback="Generated medical content",
)
