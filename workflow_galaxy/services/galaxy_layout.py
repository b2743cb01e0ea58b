"""
3D placement of workflows for the dashboard.
Galaxy view clusters cards by category on rings around the origin; the
technical view lays them out on a flat grid.
"""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Sequence

from workflow_galaxy.schemas.workflow import Position, WorkflowCategory, WorkflowMetadata

# "other" sits off the six-fold ring on purpose.
CATEGORY_ANGLES: dict[WorkflowCategory, float] = {
    WorkflowCategory.AI: 0.0,
    WorkflowCategory.SEO: math.pi / 3,
    WorkflowCategory.HR: (2 * math.pi) / 3,
    WorkflowCategory.LEAD_GEN: math.pi,
    WorkflowCategory.MONITORING: (4 * math.pi) / 3,
    WorkflowCategory.DATA: (5 * math.pi) / 3,
    WorkflowCategory.OTHER: math.pi / 6,
}

CATEGORY_RADIUS: dict[WorkflowCategory, float] = {
    WorkflowCategory.AI: 12.0,
    WorkflowCategory.SEO: 10.0,
    WorkflowCategory.HR: 11.0,
    WorkflowCategory.LEAD_GEN: 9.0,
    WorkflowCategory.MONITORING: 13.0,
    WorkflowCategory.DATA: 14.0,
    WorkflowCategory.OTHER: 8.0,
}

ANGLE_SPREAD = math.pi / 4
DEFAULT_RADIUS = 10.0

GRID_COLUMNS = 4
GRID_SPACING = 5.0


def angle_offset(index_in_category: int, category_count: int, spread: float = ANGLE_SPREAD) -> float:
    if category_count <= 1:
        return 0.0
    return (index_in_category / (category_count - 1) - 0.5) * spread


def vertical_offset(node_count: int) -> float:
    return (node_count / 20 - 0.5) * 4


def layout_noise(index: int) -> float:
    """Trigonometric hash of the ordinal index; keeps the sign like a JS `%`."""
    return math.fmod(math.sin(index * 12.9898) * 43758.5453, 1.0)


def calculate_galaxy_positions(workflows: Sequence[WorkflowMetadata]) -> list[WorkflowMetadata]:
    grouped: dict[WorkflowCategory, list[int]] = defaultdict(list)
    for index, workflow in enumerate(workflows):
        grouped[workflow.category].append(index)

    index_in_category: dict[int, int] = {}
    for members in grouped.values():
        for position, index in enumerate(members):
            index_in_category[index] = position

    positioned: list[WorkflowMetadata] = []
    for index, workflow in enumerate(workflows):
        category_count = len(grouped[workflow.category])
        angle = CATEGORY_ANGLES.get(workflow.category, 0.0) + angle_offset(
            index_in_category[index], category_count
        )
        radius = CATEGORY_RADIUS.get(workflow.category, DEFAULT_RADIUS)
        noise = layout_noise(index)

        positioned.append(
            workflow.model_copy(
                update={
                    "position": Position(
                        x=math.cos(angle) * radius + noise * 2,
                        y=vertical_offset(workflow.node_count) + noise,
                        z=math.sin(angle) * radius + noise * 2,
                    )
                }
            )
        )
    return positioned


def calculate_grid_positions(
    workflows: Sequence[WorkflowMetadata],
    columns: int = GRID_COLUMNS,
    spacing: float = GRID_SPACING,
) -> list[WorkflowMetadata]:
    """Flat grid centred on the origin along x and z."""
    x_shift = ((columns - 1) * spacing) / 2
    z_shift = (math.ceil(len(workflows) / columns) * spacing) / 2

    positioned: list[WorkflowMetadata] = []
    for index, workflow in enumerate(workflows):
        row, col = divmod(index, columns)
        positioned.append(
            workflow.model_copy(
                update={"position": Position(x=col * spacing - x_shift, y=0.0, z=row * spacing - z_shift)}
            )
        )
    return positioned
