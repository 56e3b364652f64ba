"""Fixed endocrine pharmacology cases for a shift.

Each record is one emergency presentation with four candidate treatments and
the explanation shown after the player commits to an answer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

OPTIONS_PER_SCENARIO = 4


class Difficulty(StrEnum):
    MEDIUM = "Medium"
    HARD = "Hard"


@dataclass(frozen=True, slots=True)
class ScenarioRecord:
    scenario_id: int
    title: str
    symptoms: str
    history: str
    options: tuple[str, ...]
    correct: str
    reason: str
    difficulty: Difficulty


SCENARIOS: tuple[ScenarioRecord, ...] = (
    ScenarioRecord(
        scenario_id=1,
        title="Thyroid Storm in Pregnancy",
        symptoms=(
            "Pregnant woman (First Trimester) presenting with sudden high fever and tachycardia. "
            "Diagnosed with Thyroid Storm."
        ),
        history="No other significant medical history.",
        options=("Methimazole", "Propylthiouracil (PTU)", "Levothyroxine", "Radioactive Iodine"),
        correct="Propylthiouracil (PTU)",
        reason=(
            "PTU is preferred in the first trimester (Methimazole is teratogenic). PTU also inhibits "
            "peripheral conversion of T4 to T3, making it suitable for thyroid storm."
        ),
        difficulty=Difficulty.HARD,
    ),
    ScenarioRecord(
        scenario_id=2,
        title="Fetal Lung Maturation",
        symptoms=(
            "Pregnant patient showing signs of preterm labor. "
            "Medication needed to promote fetal lung maturation."
        ),
        history="Fetus at approx. 28 weeks.",
        options=("Prednisone", "Cortisone", "Dexamethasone", "Fludrocortisone"),
        correct="Dexamethasone",
        reason=(
            "Dexamethasone is an active drug and crosses the placenta. Prednisone is deactivated "
            "by placental 11β-HSD2 and is ineffective for the fetus."
        ),
        difficulty=Difficulty.MEDIUM,
    ),
    ScenarioRecord(
        scenario_id=3,
        title="Inflammation with Liver Impairment",
        symptoms="Patient with severe cirrhosis requires systemic steroids for inflammation control.",
        history="Extremely high ALT/AST levels.",
        options=("Prednisone", "Prednisolone", "Cortisone", "Methimazole"),
        correct="Prednisolone",
        reason=(
            "Prednisone is a prodrug requiring hepatic conversion. Patients with poor liver "
            "function should directly use the active drug, Prednisolone."
        ),
        difficulty=Difficulty.MEDIUM,
    ),
    ScenarioRecord(
        scenario_id=4,
        title="Severe Drug Adverse Reaction",
        symptoms=(
            "Patient presents with sudden high fever and severe sore throat after weeks of "
            "taking anti-thyroid medication."
        ),
        history="Currently taking PTU.",
        options=(
            "Prescribe Antibiotics",
            "Increase PTU Dosage",
            "Switch to Methimazole",
            "Stop Drug Immediately & Check WBC",
        ),
        correct="Stop Drug Immediately & Check WBC",
        reason=(
            "This is a warning sign of Agranulocytosis, a severe side effect of Thioamides. "
            "The drug must be stopped immediately."
        ),
        difficulty=Difficulty.HARD,
    ),
    ScenarioRecord(
        scenario_id=5,
        title="Addison's Disease Treatment",
        symptoms=(
            "Diagnosed with Primary Adrenal Insufficiency (Addison's Disease), presenting with "
            "hypotension and hyperkalemia."
        ),
        history="Requires mineralocorticoid replacement.",
        options=("Dexamethasone", "Spironolactone", "Fludrocortisone", "Tamoxifen"),
        correct="Fludrocortisone",
        reason=(
            "Fludrocortisone is a potent mineralocorticoid agonist (strong sodium retention) used "
            "for replacement therapy. Spironolactone is an antagonist and would be fatal."
        ),
        difficulty=Difficulty.MEDIUM,
    ),
    ScenarioRecord(
        scenario_id=6,
        title="BPH Treatment",
        symptoms="Elderly male with difficulty urinating, diagnosed with Benign Prostatic Hyperplasia (BPH).",
        history="Patient also desires treatment for male pattern baldness.",
        options=("Flutamide", "Finasteride", "Tamoxifen", "Testosterone"),
        correct="Finasteride",
        reason=(
            "Finasteride is a 5α-reductase inhibitor. It reduces DHT production, shrinking the "
            "prostate and treating male pattern baldness. Flutamide is a receptor blocker."
        ),
        difficulty=Difficulty.MEDIUM,
    ),
    ScenarioRecord(
        scenario_id=7,
        title="Myxedema Coma",
        symptoms="Patient presents with extreme hypothyroidism and is comatose (Myxedema Coma).",
        history="Emergency resuscitation required.",
        options=("Levothyroxine (T4)", "Liothyronine (T3)", "Lugol's Solution", "PTU"),
        correct="Liothyronine (T3)",
        reason=(
            "While T4 is the standard maintenance therapy, Myxedema Coma is an emergency requiring "
            "the fast-acting, high-potency T3 (Liothyronine) to save life."
        ),
        difficulty=Difficulty.HARD,
    ),
    ScenarioRecord(
        scenario_id=8,
        title="Breast Cancer Treatment",
        symptoms="Premenopausal woman diagnosed with estrogen-dependent breast cancer.",
        history="No history of osteoporosis.",
        options=("Raloxifene", "Tamoxifen", "Estradiol", "Progesterone"),
        correct="Tamoxifen",
        reason=(
            "Tamoxifen acts as an antagonist in breast tissue (treating cancer). Raloxifene is "
            "primarily used for osteoporosis prevention."
        ),
        difficulty=Difficulty.MEDIUM,
    ),
    ScenarioRecord(
        scenario_id=9,
        title="Adrenal Crisis (Withdrawal)",
        symptoms="Patient on long-term high-dose steroids suddenly stopped medication completely.",
        history="Admitted with hypotension and shock.",
        options=(
            "Administer Epinephrine",
            "Administer High-Dose IV Steroids",
            "Administer Antibiotics",
            "Observe",
        ),
        correct="Administer High-Dose IV Steroids",
        reason=(
            "This is Acute Adrenal Crisis. Long-term negative feedback causes adrenal atrophy; "
            "sudden withdrawal is fatal. Immediate steroid replacement is needed."
        ),
        difficulty=Difficulty.HARD,
    ),
    ScenarioRecord(
        scenario_id=10,
        title="Edema Side Effects",
        symptoms=(
            "Patient requires steroids but has severe edema and a history of heart failure. "
            "Need a drug with minimal mineralocorticoid activity."
        ),
        history="Poor cardiac function.",
        options=("Hydrocortisone", "Prednisone", "Dexamethasone", "Cortisone"),
        correct="Dexamethasone",
        reason=(
            "Dexamethasone has 0 sodium retention activity, preventing worsening of edema. "
            "Prednisone still has slight (0.8) retention activity."
        ),
        difficulty=Difficulty.HARD,
    ),
)

KEY_TAKEAWAYS: tuple[str, ...] = (
    "Thyroid Storm in Pregnancy: PTU (1st Trimester)",
    "Fetal Lung Maturation: Dexamethasone",
    "Addison's Disease: Fludrocortisone",
    "Watch for Agranulocytosis with PTU/Methimazole",
)


def validate_scenarios(records: Sequence[ScenarioRecord]) -> None:
    """Raise ValueError if any record could not be played as a four-option case."""

    if not records:
        raise ValueError("at least one scenario is required")

    seen_ids: set[int] = set()
    for rec in records:
        if rec.scenario_id in seen_ids:
            raise ValueError(f"duplicate scenario id {rec.scenario_id}")
        seen_ids.add(rec.scenario_id)

        if len(rec.options) != OPTIONS_PER_SCENARIO:
            raise ValueError(
                f"scenario {rec.scenario_id} must have {OPTIONS_PER_SCENARIO} options, got {len(rec.options)}"
            )
        if len(set(rec.options)) != len(rec.options):
            raise ValueError(f"scenario {rec.scenario_id} has duplicate options")
        if rec.correct not in rec.options:
            raise ValueError(f"scenario {rec.scenario_id}: correct option {rec.correct!r} is not offered")
