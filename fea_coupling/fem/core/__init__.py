"""Core FEM geometry for the coupling interface."""

from .element import ElementType, FaceKind, get_element_info, get_face_nodes
from .quadrature import FaceQuadrature, gauss_rule, equidistant_rule
from .boundary import (
    BoundaryFace,
    BoundaryMesh,
    FaceValues,
    MappingQ1,
    MappingQ1Eulerian,
    create_box_mesh,
    create_rectangle_mesh,
    nodal_values,
)

__all__ = [
    "ElementType",
    "FaceKind",
    "get_element_info",
    "get_face_nodes",
    "FaceQuadrature",
    "gauss_rule",
    "equidistant_rule",
    "BoundaryFace",
    "BoundaryMesh",
    "FaceValues",
    "MappingQ1",
    "MappingQ1Eulerian",
    "create_box_mesh",
    "create_rectangle_mesh",
    "nodal_values",
]
