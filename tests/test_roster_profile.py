"""Roster lookups and teaching profile cascade."""

from classledger.models import TeachingAssignment
from classledger.profile import TeachingProfile, load_teaching_profile
from classledger.roster import DocumentRosterProvider
from classledger.store import Document


def _seed_students(store):
	store.seed("users", "u1", {"role": "student", "standard": "10A", "name": "zoe", "rollNo": 12})
	store.seed("users", "u2", {"role": "student", "standard": "10A", "name": "Adam", "profileImage": "https://img/a.png", "subjects": ["Maths"]})
	store.seed("users", "u3", {"role": "student", "standard": "10A", "subjects": ["Physics"]})
	store.seed("users", "u4", {"role": "student", "standard": "9B", "name": "Other class"})
	store.seed("users", "t1", {"role": "teacher", "standard": "10A", "name": "Teacher"})


async def test_roster_is_class_students_by_name(store):
	_seed_students(store)
	roster = await DocumentRosterProvider(store).get_roster("10A")

	assert [entry.student_id for entry in roster] == ["u2", "u3", "u1"]
	adam, unknown, zoe = roster
	assert adam.avatar_url == "https://img/a.png"
	assert unknown.display_name == "Unknown"
	assert zoe.roll_number == "12"
	assert zoe.initial == "Z"


async def test_enrollment_filter_keeps_unlisted_students(store):
	_seed_students(store)
	provider = DocumentRosterProvider(store, filter_by_enrollment=True)

	maths = await provider.get_roster("10A", "Maths")
	assert [entry.student_id for entry in maths] == ["u2", "u1"]

	everyone = await provider.get_roster("10A")
	assert len(everyone) == 3


def test_profile_lists_classes_and_subjects_in_order():
	profile = TeachingProfile.from_document(Document("t1", {"teachingProfile": [
		{"class": "10A", "subject": "Maths"},
		{"class": "9B", "subject": "English"},
		{"class": "10A", "subject": "Physics"},
		{"class": "10A"},
		"garbage",
	]}))

	assert profile.classes() == ["10A", "9B"]
	assert profile.subjects_for("10A") == ["Maths", "Physics"]
	assert profile.subjects_for("8C") == []
	assert profile.teaches("9B", "English")


def test_profile_falls_back_to_classes_and_subjects():
	profile = TeachingProfile.from_document(Document("t1", {
		"classesTaught": ["10A", "9B"],
		"subjects": ["Maths", "Physics"],
	}))

	assert profile.assignments == [
		TeachingAssignment("10A", "Maths"),
		TeachingAssignment("10A", "Physics"),
		TeachingAssignment("9B", "Maths"),
		TeachingAssignment("9B", "Physics"),
	]


async def test_load_profile_from_store(store):
	store.seed("users", "t1", {"teachingProfile": [{"class": "10A", "subject": "Maths"}]})

	profile = await load_teaching_profile(store, "t1")
	assert profile.classes() == ["10A"]

	missing = await load_teaching_profile(store, "ghost")
	assert missing.assignments == []
