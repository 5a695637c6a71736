"""Reference data loaded into a fresh repository."""

from config import Settings
from api.models.review import Reviewer
from api.models.session import BodyRegion
from storage.repository import Repository

DEFAULT_REGIONS = [
    BodyRegion(region_id="head", name="head", display_name="Head", display_order=1),
    BodyRegion(region_id="neck", name="neck", display_name="Neck", display_order=2),
    BodyRegion(region_id="chest", name="chest", display_name="Chest", display_order=3),
    BodyRegion(region_id="abdomen", name="abdomen", display_name="Abdomen", display_order=4),
    BodyRegion(region_id="back", name="back", display_name="Back", display_order=5),
    BodyRegion(region_id="pelvis", name="pelvis", display_name="Pelvis", display_order=6),
    BodyRegion(region_id="upper_limb", name="upper_limb", display_name="Upper Limb", display_order=7),
    BodyRegion(region_id="lower_limb", name="lower_limb", display_name="Lower Limb", display_order=8),
    BodyRegion(region_id="skin", name="skin", display_name="Skin", display_order=9),
    BodyRegion(
        region_id="left_upper_quadrant",
        name="left_upper_quadrant",
        display_name="Left Upper Quadrant",
        parent_id="abdomen",
        display_order=1,
    ),
    BodyRegion(
        region_id="right_lower_quadrant",
        name="right_lower_quadrant",
        display_name="Right Lower Quadrant",
        parent_id="abdomen",
        display_order=4,
    ),
]


def seed_defaults(repository: Repository, settings: Settings) -> None:
    """Load the body-region catalog and the demo reviewer."""
    for region in DEFAULT_REGIONS:
        repository.create("regions", region)

    repository.create(
        "reviewers",
        Reviewer(
            reviewer_id=settings.demo_reviewer_id,
            display_name=settings.demo_reviewer_name,
            email=settings.demo_reviewer_email,
        ),
    )
