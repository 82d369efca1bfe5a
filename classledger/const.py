"""Constants for classledger."""

# Storage boundary date format
DATE_FORMAT = "%d/%m/%Y"

# Collections
COLLECTION_ATTENDANCE = "attendance"
COLLECTION_EXAM_RESULTS = "exam_results"
COLLECTION_USERS = "users"

# Document fields shared by both session kinds
FIELD_CLASS_ID = "classId"
FIELD_SUBJECT = "subject"
FIELD_DATE = "date"
FIELD_TEACHER_ID = "teacherId"
FIELD_CREATED_AT = "createdAt"
FIELD_UPDATED_AT = "updatedAt"

# Attendance fields
FIELD_RECORDS = "records"
FIELD_SUMMARY = "summary"

# Exam fields
FIELD_EXAM_TITLE = "examTitle"
FIELD_MAX_SCORE = "maxScore"
FIELD_RESULTS = "results"
FIELD_STUDENT_COUNT = "studentCount"

# User fields
FIELD_ROLE = "role"
FIELD_STANDARD = "standard"
FIELD_NAME = "name"
FIELD_ROLL_NO = "rollNo"
FIELD_PROFILE_IMAGE = "profileImage"
FIELD_SUBJECTS = "subjects"
FIELD_TEACHING_PROFILE = "teachingProfile"
FIELD_CLASSES_TAUGHT = "classesTaught"
ROLE_STUDENT = "student"

UNKNOWN_STUDENT_NAME = "Unknown"
GENERAL_SUBJECT = "General"

# Default values
DEFAULT_DATABASE = "(default)"
DEFAULT_TIMEOUT_SECONDS = 15
DEFAULT_MAX_SCORE = 100
FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"

# Grade bands for student reports
GRADE_GOOD_THRESHOLD = 75
GRADE_FAIR_THRESHOLD = 50
GRADE_GOOD = "good"
GRADE_FAIR = "fair"
GRADE_POOR = "poor"

# Environment variables
ENV_PROJECT_ID = "CLASSLEDGER_PROJECT_ID"
ENV_DATABASE = "CLASSLEDGER_DATABASE"
ENV_ID_TOKEN = "CLASSLEDGER_ID_TOKEN"
ENV_TIMEOUT = "CLASSLEDGER_TIMEOUT"
ENV_ATTENDANCE_COLLECTION = "CLASSLEDGER_ATTENDANCE_COLLECTION"
ENV_EXAM_COLLECTION = "CLASSLEDGER_EXAM_COLLECTION"
ENV_USERS_COLLECTION = "CLASSLEDGER_USERS_COLLECTION"
ENV_DEFAULT_MAX_SCORE = "CLASSLEDGER_DEFAULT_MAX_SCORE"
