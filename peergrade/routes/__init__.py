"""
peergrade/routes/__init__.py
Route registration
"""
from fastapi import APIRouter

from peergrade.routes import auth, grading, professor, projects

router = APIRouter()

router.include_router(auth.router)
router.include_router(projects.router)
router.include_router(projects.deliverables_router)
router.include_router(grading.router)
router.include_router(professor.router)
