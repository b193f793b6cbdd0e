# Quality models and the ISO/IEC 25010 product quality tree

from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from telemetry_quality.errors import GoalStructureError
from telemetry_quality.goals import CompositeGoal, Goal, GoalTree, LeafGoal
from telemetry_quality.selection import extract_keywords


class QualityModel:
    """
    Модель качества: метаданные + дерево целей.
    Quality model: metadata plus a goal tree.
    """

    def __init__(
        self,
        name: str,
        version: str = "",
        purpose: str = "",
        url: str = "",
        assessment_methodology: str = "",
    ):
        self.name = name
        self.version = version
        self.purpose = purpose
        self.url = url
        self.assessment_methodology = assessment_methodology
        self.tree = GoalTree()

    @property
    def goals(self) -> List[Goal]:
        return self.tree.roots

    def add_goal(self, goal: Goal) -> Goal:
        if self.tree.find_root(goal.name) is not None:
            raise GoalStructureError(f"top-level goal '{goal.name}' already exists")
        self.tree.add_root(goal)
        return goal

    def add_sub_goal(self, parent_name: str, goal: Goal) -> Goal:
        parent = self.get_goal_by_name(parent_name)
        if parent is None:
            raise GoalStructureError(f"parent goal '{parent_name}' not found")
        if self.tree.has_child(parent, goal.name):
            raise GoalStructureError(
                f"goal '{parent.name}' already has a sub-goal '{goal.name}'"
            )
        self.tree.add_child(parent, goal)
        return goal

    def get_goal_by_name(self, name: str) -> Optional[Goal]:
        return self.tree.find(name)

    def has_goal(self, name: str) -> bool:
        return self.tree.find_root(name) is not None

    def has_sub_goal(self, parent_name: str, name: str) -> bool:
        parent = self.get_goal_by_name(parent_name)
        return parent is not None and self.tree.has_child(parent, name)

    def remove_goal(self, name: str) -> bool:
        return self.tree.remove_root(name)

    def remove_sub_goal(self, parent_name: str, name: str) -> bool:
        parent = self.get_goal_by_name(parent_name)
        if parent is None:
            return False
        return self.tree.remove_child(parent, name)

    def clear_goals(self) -> None:
        self.tree = GoalTree()

    def clear_sub_goals(self, parent_name: str) -> None:
        parent = self.get_goal_by_name(parent_name)
        if parent is None:
            raise GoalStructureError(f"parent goal '{parent_name}' not found")
        self.tree.clear_children(parent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "purpose": self.purpose,
            "url": self.url,
            "assessmentMethodology": self.assessment_methodology,
            "goals": [self.tree.to_dict(goal) for goal in self.goals],
        }

    def display_info(self) -> str:
        header = f"{self.name} ({self.version})" if self.version else self.name
        return header + "\n" + self.tree.render()


# (name, description, sub-goals); sub-goals are either leaf tuples
# (name, description) or nested composite tuples.
GoalSpec = Tuple[str, str, Sequence[Any]]

ISO_25010_CHARACTERISTICS: Sequence[GoalSpec] = (
    (
        "Interaction Capability",
        "The ability of a product to be interacted with by specified users to "
        "exchange information between a user and a system via the user interface "
        "to complete the intended task",
        (
            ("Appropriateness Recognizability",
             "The degree to which users can recognize whether the software is "
             "appropriate for their needs"),
            ("Learnability", "The degree to which the software can be learned by users"),
            ("Operability",
             "The degree to which the software is user-friendly and controllable"),
            ("User Error Protection",
             "The degree to which the software protects users against making errors"),
            (
                "User Engagement",
                "The degree to which the software presents functions and information "
                "in an inviting and motivating manner encouraging continued interaction",
                (
                    ("Popularity",
                     "The degree to which the software is popular among its users"),
                    ("Activity",
                     "The degree to which users are actively engaged with the software"),
                    ("Loyalty", "The degree to which users are loyal to the software"),
                ),
            ),
            ("Inclusivity",
             "The degree to which the software can be utilized by people of various "
             "backgrounds"),
            ("User Assistance",
             "The degree to which the software can be used by people with the widest "
             "range of characteristics and capabilities"),
            ("Self-Descriptiveness",
             "The degree to which the software presents appropriate information to "
             "make its capabilities immediately obvious to the user"),
        ),
    ),
    (
        "Functional Suitability",
        "The degree to which the software provides functions that meet stated and "
        "implied needs when used under specified conditions",
        (
            ("Functional Completeness",
             "The degree to which the set of functions covers all the specified tasks "
             "and user objectives"),
            ("Functional Correctness",
             "The degree to which the software provides correct results with the "
             "needed degree of precision"),
            ("Functional Appropriateness",
             "The degree to which the functions facilitate the accomplishment of "
             "specified tasks and objectives"),
        ),
    ),
    (
        "Performance Efficiency",
        "The capability to perform functions within specified time, resources and "
        "throughput parameters under stated conditions",
        (
            ("Time Behavior",
             "The response and processing times and throughput rates of the software "
             "under stated conditions"),
            ("Resource Utilization",
             "The amounts and types of resources used by the software when performing "
             "its function"),
            ("Capacity",
             "The maximum limits of the software to perform its function under "
             "specific conditions"),
        ),
    ),
    (
        "Compatibility",
        "The ability of a product to exchange information with other products and to "
        "perform its functions while sharing the same environment and resources",
        (
            ("Co-existence",
             "The ability to perform required functions while sharing a common "
             "environment and resources with other products"),
            ("Interoperability",
             "The ability to exchange information with other products and mutually use "
             "the exchanged information"),
        ),
    ),
    (
        "Reliability",
        "The ability to perform required functions under specified conditions for a "
        "specified period",
        (
            ("Faultlessness",
             "The capability to perform functions without faults under normal operation"),
            ("Availability",
             "The capability to be operational and accessible when required for use"),
            ("Fault Tolerance",
             "The degree to which the software operates as intended despite hardware "
             "or software faults"),
            ("Recoverability",
             "The degree to which the software can recover data and re-establish the "
             "desired state after an interruption or failure"),
        ),
    ),
    (
        "Security",
        "The capability to protect information and data and to defend against attack "
        "patterns by malicious actors",
        (
            ("Confidentiality",
             "The degree to which data are accessible only to those authorized to "
             "access them"),
            ("Integrity",
             "The degree to which the software prevents unauthorized access to, or "
             "modification of, programs or data"),
            ("Non-repudiation",
             "The degree to which actions or events can be proven to have taken place"),
            ("Accountability",
             "The degree to which the actions of an entity can be traced uniquely to "
             "the entity"),
            ("Authenticity",
             "The capability to prove that the identity of a subject or resource is the "
             "one claimed"),
            ("Resistance",
             "The degree to which the software can sustain operations while under "
             "attack from a malicious actor"),
        ),
    ),
    (
        "Flexibility",
        "The ability to be adapted to changes in requirements, contexts of use or "
        "system environment",
        (
            ("Adaptability",
             "The capability to be adapted for or transferred to different hardware, "
             "software or usage environments"),
            ("Scalability",
             "The capability to handle growing or shrinking workloads or to adapt "
             "capacity to variability"),
            ("Installability",
             "The degree to which the software can be installed and uninstalled in a "
             "specified environment"),
            ("Replaceability",
             "The capability to be replaced by another product for the same purpose "
             "in the same environment"),
        ),
    ),
    (
        "Safety",
        "The capability under defined conditions to avoid a state in which human life, "
        "health, property or the environment is endangered",
        (
            ("Operational Constraint",
             "The capability to constrain operation within safe parameters when "
             "encountering operational hazard"),
            ("Risk Identification",
             "The capability to identify events or operations that expose life, "
             "property or environment to unacceptable risk"),
            ("Fail Safe",
             "The capability to place itself in a safe operating mode in the event of "
             "a failure"),
            ("Hazard Warning",
             "The capability to warn of unacceptable risks in sufficient time to "
             "sustain safe operations"),
            ("Safe Integration",
             "The capability to maintain safety during and after integration with "
             "other components"),
        ),
    ),
    (
        "Energy Consumption",
        "The capability of the software to minimize energy usage during operation and "
        "reduce its environmental impact",
        (
            ("Physical Footprint",
             "The degree to which the software contributes to the reduction of energy "
             "used by the underlying hardware and infrastructure"),
            ("Ecological Footprint",
             "The degree to which the software lowers its environmental impact, "
             "including carbon emissions and resource consumption"),
        ),
    ),
)


def _build_goal(tree: GoalTree, parent: Optional[Goal], spec: Sequence[Any]) -> Goal:
    if len(spec) == 3:
        name, description, children = spec
        goal: Goal = CompositeGoal(name, description, 1.0)
    else:
        name, description = spec
        children = ()
        goal = LeafGoal(name, description, 1.0)

    if parent is None:
        tree.add_root(goal)
    else:
        tree.add_child(parent, goal)
    for child_spec in children:
        _build_goal(tree, goal, child_spec)
    return goal


class ISO25010Model(QualityModel):
    """ISO/IEC 25010:2023 product quality model"""

    def __init__(self):
        super().__init__(
            name="ISO/IEC 25010 - Product Quality Model",
            version="2023",
            purpose=(
                "The ISO/IEC 25010 (2023) identifies the main quality characteristics "
                "of software systems: Interaction Capability, Functional Suitability, "
                "Performance Efficiency, Compatibility, Reliability, Security, "
                "Flexibility and Safety, extended with Energy Consumption. They form a "
                "framework for assessing the quality of software products from the "
                "product perspective, including user engagement, response time, "
                "resource usage and security."
            ),
            url="https://www.iso.org/obp/ui/#iso:std:iso-iec:25010:ed-2:v1:en",
            assessment_methodology="weighted average of normalized telemetry metrics",
        )
        self.rebuild()

    def rebuild(self) -> None:
        """Пересобирает дерево характеристик / Clears and rebuilds the tree"""
        self.clear_goals()
        for spec in ISO_25010_CHARACTERISTICS:
            _build_goal(self.tree, None, spec)


def build_iso25010_model() -> ISO25010Model:
    return ISO25010Model()


QUALITY_MODELS: "OrderedDict[str, Callable[[], QualityModel]]" = OrderedDict(
    {"iso25010": build_iso25010_model}
)


def get_quality_model(key: str) -> QualityModel:
    factory = QUALITY_MODELS.get(str(key).strip().lower())
    if factory is None:
        raise KeyError(
            f"unknown quality model '{key}', expected one of: {', '.join(QUALITY_MODELS)}"
        )
    return factory()


def select_model_by_purpose(text: str) -> Optional[QualityModel]:
    """
    Подбирает модель по ключевым словам цели.
    Picks the registered model whose purpose shares most keywords with ``text``.
    """
    wanted = set(extract_keywords(text))
    if not wanted:
        return None

    best: Optional[QualityModel] = None
    best_hits = 0
    for factory in QUALITY_MODELS.values():
        model = factory()
        hits = len(wanted.intersection(extract_keywords(model.purpose)))
        if hits > best_hits:
            best, best_hits = model, hits
    return best
