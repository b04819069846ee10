"""
Which dashboard a signing-in account belongs to.

Admins are matched first whatever role was picked on the login form;
teachers only when the teacher role was picked; everyone else signs in
through a student record, by the student's or father's email or phone.
"""
import logging
from dataclasses import dataclass

from django.core.exceptions import PermissionDenied
from django.db import DEFAULT_DB_ALIAS
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)

SUPER_ADMIN = 'super-admin'
TEACHER = 'teacher'
PARENT = 'parent'

DASHBOARDS = {
    SUPER_ADMIN: '/super-admin/dashboard',
    TEACHER: '/teacher/dashboard',
    PARENT: '/parent/dashboard',
}


class AccountNotApproved(PermissionDenied):
    pass


@dataclass(frozen=True)
class LoginTarget:
    role: str
    email: str
    record: object

    @property
    def redirect_to(self):
        return DASHBOARDS.get(self.role, DASHBOARDS[SUPER_ADMIN])


def _student_match(identifier, using):
    from apps.students.models import Student

    students = Student.objects.using(using)
    if '@' in identifier:
        lookups = ({'email__iexact': identifier}, {'father_email__iexact': identifier})
    else:
        lookups = ({'phone': identifier}, {'father_phone': identifier})
    for lookup in lookups:
        student = students.filter(**lookup).first()
        if student is not None:
            return student
    return None


def resolve_login(identifier, role_hint=None, using=DEFAULT_DB_ALIAS):
    """
    Find the account behind a login identifier.

    Returns a LoginTarget, or None when nothing matches. Raises
    AccountNotApproved for matched accounts still waiting for approval.
    """
    from apps.staffs.models import Admin, Teacher

    identifier = (identifier or '').strip()
    if not identifier:
        return None

    target = None
    admin = Admin.objects.using(using).filter(email__iexact=identifier).first()
    if admin is not None:
        target = LoginTarget(admin.role, admin.email, admin)
    elif role_hint == TEACHER:
        teacher = Teacher.objects.using(using).filter(email__iexact=identifier).first()
        if teacher is not None:
            target = LoginTarget(TEACHER, teacher.email, teacher)
    elif role_hint in ('student', PARENT):
        student = _student_match(identifier, using)
        if student is not None:
            # The student's own email is the sign-in account for the family
            target = LoginTarget(PARENT, student.email, student)

    if target is None:
        logger.info(f"🔒 No account for login '{identifier}' (role {role_hint})")
        return None

    status = getattr(target.record, 'status', '')
    if target.role != SUPER_ADMIN and status and status != 'approved':
        logger.warning(f"⛔ Login blocked for unapproved {target.role} {target.email}")
        raise AccountNotApproved(_("Your account has not been approved yet."))

    return target
