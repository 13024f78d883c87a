from ems.models.user import User, UserRole, UserSession
from ems.models.employee import Employee, EmployeeStatus, EmergencyContact, EmploymentHistory
from ems.models.leave_type import LeaveType
from ems.models.leave_balance import LeaveBalance
from ems.models.leave_request import LeaveRequest, LeaveStatus
from ems.models.holiday import Holiday
from ems.models.attendance import Attendance
from ems.models.payroll import PayrollRun, PayrollRunStatus, Payslip, PayslipStatus
from ems.models.salary_component import SalaryComponent, ComponentType, CalculationType
from ems.models.performance import (
    PerformanceReview, ReviewStatus,
    PerformanceGoal, GoalStatus,
    PerformanceFeedback, FeedbackType,
)
from ems.models.notification import Notification, NotificationType
from ems.models.document import Document
from ems.models.recent_search import RecentSearch
