import pytest

from conftest import FakeStore, make_record
from screens.correspondence.controller import CorrespondenceController, level_options


@pytest.fixture
def store():
    enquiries = [make_record(i, f"Enq{i}", level=(i % 5) + 1, email=f"e{i}@x.com") for i in range(35)]
    students = [make_record(100 + i, f"Stu{i}", is_approved=True) for i in range(12)]
    return FakeStore({"enquiry": enquiries, "student": students})


@pytest.fixture
def ctrl(store):
    c = CorrespondenceController(store, author="Desk")
    c.ensure_loaded()
    return c


def test_initial_load_is_enquiries(ctrl, store):
    assert ctrl.category == "enquiry"
    assert store.calls == [("list_records", "enquiry")]
    assert ctrl.paginator.total == 35
    assert len(ctrl.page_items()) == 10


def test_ensure_loaded_does_not_refetch(ctrl, store):
    ctrl.ensure_loaded()
    assert store.count("list_records") == 1


@pytest.mark.parametrize("change", [
    lambda c: c.set_category("student"),
    lambda c: c.set_search("enq1"),
    lambda c: c.set_min_level("2"),
    lambda c: c.set_min_level(""),
])
def test_any_criteria_change_resets_to_page_one(ctrl, change):
    ctrl.go_to_page(3)
    assert ctrl.paginator.page == 3
    change(ctrl)
    assert ctrl.paginator.page == 1


def test_category_switch_marks_stale_until_loaded(ctrl, store):
    ctrl.set_category("student")
    assert not ctrl.loaded
    assert ctrl.loader.loading
    assert store.count("list_records") == 1
    ctrl.ensure_loaded()
    assert ctrl.loaded
    assert store.calls[-1] == ("list_records", "student")
    assert ctrl.paginator.total == 12
    assert ctrl.paginator.total_pages == 2


def test_same_category_does_not_reload(ctrl, store):
    ctrl.set_category("enquiry")
    assert store.count("list_records") == 1


def test_filters_combine(ctrl):
    ctrl.set_min_level("5")
    assert all(r.level == 5 for r in ctrl.filtered())
    assert ctrl.paginator.total == 7
    ctrl.set_search("enq4")
    assert [r.first_name for r in ctrl.filtered()] == ["Enq4"]


def test_pagination_navigation(ctrl):
    assert not ctrl.previous_page()
    assert ctrl.next_page()
    assert [r.first_name for r in ctrl.page_items()][0] == "Enq10"
    ctrl.go_to_page(4)
    assert len(ctrl.page_items()) == 5
    assert not ctrl.next_page()


def test_note_success_queues_toast(ctrl, store):
    record = ctrl.page_items()[0]
    ctrl.start_note(record)
    ctrl.submit_note("Asked for prospectus")
    assert not ctrl.composer.is_open
    notices = ctrl.drain_notices()
    assert [n.kind for n in notices] == ["success"]
    assert ctrl.drain_notices() == []
    assert store.calls[-1] == ("add_remark", record.id, "Asked for prospectus", "Desk")


def test_note_validation_is_inline_only(ctrl):
    ctrl.start_note(ctrl.page_items()[0])
    notice = ctrl.submit_note("   ")
    assert notice.kind == "validation"
    assert ctrl.composer.validation_message
    assert ctrl.drain_notices() == []


def test_history_failure_is_reported(ctrl, store):
    store.fail_history = True
    result = ctrl.view_history(ctrl.page_items()[0])
    assert not result.ok
    assert [n.kind for n in ctrl.drain_notices()] == ["failure"]


def test_history_panel_closes_on_category_switch(ctrl):
    ctrl.view_history(ctrl.page_items()[0])
    assert ctrl.history is not None
    ctrl.set_category("student")
    assert ctrl.history is None


def test_list_failure_leaves_empty_table(store):
    store.fail_list = True
    c = CorrespondenceController(store)
    c.ensure_loaded()
    assert c.page_items() == []
    assert c.paginator.total_pages == 0
    assert c.loaded


def test_student_tab_offers_admitted_level_only():
    assert [code for code, _ in level_options("enquiry")] == ["", "1", "2", "3", "4", "5"]
    assert level_options("student") == [("", "All Levels"), ("5", "Level 5 - Admitted Students Only")]


def test_category_switch_drops_threshold_the_tab_does_not_offer(ctrl):
    ctrl.set_min_level("3")
    ctrl.set_category("student")
    assert ctrl.min_level is None
    ctrl.set_min_level("5")
    ctrl.set_category("enquiry")
    assert ctrl.min_level == 5
