import pytest
from pydantic import TypeAdapter, ValidationError

from core.cascade import (
    CustomerTypeChanged,
    FieldChange,
    PartAdded,
    PartFieldChanged,
    PartRemoved,
    PaymentAdded,
    PaymentFieldChanged,
    RecordNotFound,
    VehicleAdded,
    VehicleFieldChanged,
    VehicleRemoved,
    apply_change,
    recalculate_job,
)
from core.models import Job, Part, PaymentEntry, Vehicle

from conftest import add_part


def _parts(job):
    sedan, suv = job.vehicles
    return sedan, sedan.parts[0], suv, suv.parts[0]


def _edit_part(job, vehicle, part, field, value):
    return apply_change(
        job, PartFieldChanged(vehicle_id=vehicle.id, part_id=part.id, field=field, value=value)
    )


def test_fixture_is_priced(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    assert sedan_part.labor_price == 150
    assert suv_part.labor_price == 175
    assert suv_part.part_total == 389
    assert two_vehicle_job.total_due == sedan_part.part_total + 389
    assert two_vehicle_job.balance_due == two_vehicle_job.total_due


def test_customer_type_reprices_every_part(two_vehicle_job):
    job = apply_change(two_vehicle_job, CustomerTypeChanged(customer_type="dealer"))
    sedan, sedan_part, suv, suv_part = _parts(job)

    assert job.customer_type == "dealer"
    assert sedan_part.labor_price == 90
    assert suv_part.labor_price == 90
    # дилер: без 3.5%
    assert suv_part.part_total == 291
    assert job.total_due == sedan_part.part_total + suv_part.part_total


def test_subcontractor_clears_materials(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    _edit_part(two_vehicle_job, suv, suv_part, "mobile_fee", 25)
    _edit_part(two_vehicle_job, suv, suv_part, "calibration_price", 195)

    job = apply_change(two_vehicle_job, CustomerTypeChanged(customer_type="subcontractor"))

    for part in (sedan_part, suv_part):
        assert part.labor_price == 100
        assert part.part_price == 0
        assert part.markup == 0
        assert part.accessories_price == 0
        assert part.urethane_price == 0
        assert part.sales_tax_percent == 0
        assert part.calibration_price == 0
        assert part.parts_subtotal == 0
    assert suv_part.mobile_fee == 25
    assert suv_part.part_total == 125
    assert job.total_due == 225


def test_leaving_subcontractor_reprices_labor(two_vehicle_job):
    apply_change(two_vehicle_job, CustomerTypeChanged(customer_type="subcontractor"))
    job = apply_change(two_vehicle_job, CustomerTypeChanged(customer_type="retail"))
    sedan, sedan_part, suv, suv_part = _parts(job)
    assert sedan_part.labor_price == 150
    assert suv_part.labor_price == 175
    # 175 * 1.035 = 181.125
    assert suv_part.part_total == 182


def test_vehicle_year_change_only_touches_that_vehicle(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    _edit_part(two_vehicle_job, suv, suv_part, "labor_price", 160)

    apply_change(two_vehicle_job, VehicleFieldChanged(vehicle_id=sedan.id, field="vehicleYear", value="2015"))

    assert sedan.vehicle_year == "2015"
    assert sedan_part.labor_price == 140
    assert suv_part.labor_price == 160


def test_body_style_change_reprices(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    before = sedan_part.part_total
    apply_change(two_vehicle_job, VehicleFieldChanged(vehicle_id=sedan.id, field="body_style", value="18 Wheeler"))
    assert sedan_part.labor_price == 250
    assert sedan_part.part_total > before


def test_other_vehicle_fields_keep_labor_overrides(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    _edit_part(two_vehicle_job, sedan, sedan_part, "labor_price", 999)
    apply_change(two_vehicle_job, VehicleFieldChanged(vehicle_id=sedan.id, field="vehicle_make", value="Honda"))
    assert sedan.vehicle_make == "Honda"
    assert sedan_part.labor_price == 999


def test_part_price_crossing_threshold_reprices_labor(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    _edit_part(two_vehicle_job, sedan, sedan_part, "partPrice", 250)
    assert sedan_part.labor_price == 188
    _edit_part(two_vehicle_job, sedan, sedan_part, "partPrice", 249)
    assert sedan_part.labor_price == 150


def test_service_and_glass_type_reprice_labor(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    _edit_part(two_vehicle_job, sedan, sedan_part, "glass_type", "door_glass")
    assert sedan_part.labor_price == 145
    _edit_part(two_vehicle_job, sedan, sedan_part, "service_type", "repair")
    assert sedan_part.labor_price == 50
    _edit_part(two_vehicle_job, sedan, sedan_part, "serviceType", "calibration")
    assert sedan_part.labor_price == 0


def test_other_part_fields_keep_labor_override(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    _edit_part(two_vehicle_job, suv, suv_part, "labor_price", 120)
    before = suv_part.part_total

    job = _edit_part(two_vehicle_job, suv, suv_part, "markup", 60)

    assert suv_part.labor_price == 120
    assert suv_part.part_total > before
    assert job.total_due == sedan_part.part_total + suv_part.part_total


def test_derived_fields_cannot_be_edited():
    with pytest.raises(ValidationError):
        PartFieldChanged(vehicle_id="v", part_id="p", field="partTotal", value=1)
    with pytest.raises(ValidationError):
        VehicleFieldChanged(vehicle_id="v", field="parts", value=[])


def test_invalid_value_is_rejected(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    with pytest.raises(ValueError):
        _edit_part(two_vehicle_job, sedan, sedan_part, "service_type", "polish")


def test_unknown_ids_raise(two_vehicle_job):
    with pytest.raises(RecordNotFound):
        apply_change(two_vehicle_job, VehicleFieldChanged(vehicle_id="nope", field="vin", value="X"))
    with pytest.raises(RecordNotFound):
        apply_change(two_vehicle_job, PartRemoved(vehicle_id="v-sedan", part_id="nope"))


def test_new_part_gets_defaults_and_suggested_labor():
    job = Job(customer_type="retail")
    vehicle = Vehicle(vehicle_year="2010", body_style="Sedan")
    apply_change(job, VehicleAdded(vehicle=vehicle))
    apply_change(job, PartAdded(vehicle_id=vehicle.id, mobile_fee=0))

    part = vehicle.parts[0]
    assert part.urethane_price == 15
    assert part.sales_tax_percent == 8.25
    assert part.labor_price == 140
    assert part.part_total > 0
    assert job.total_due == part.part_total


def test_new_part_on_subcontractor_job():
    job = Job(customer_type="subcontractor")
    vehicle = Vehicle(vehicle_year="2022", body_style="SUV")
    apply_change(job, VehicleAdded(vehicle=vehicle))
    apply_change(
        job,
        PartAdded(vehicle_id=vehicle.id, part=Part(glass_type="back_glass", part_price=80), mobile_fee=20),
    )

    part = vehicle.parts[0]
    assert part.glass_type == "back_glass"
    assert part.part_price == 0
    assert part.urethane_price == 0
    assert part.labor_price == 100
    assert part.part_total == 120


def test_removing_parts_and_vehicles_updates_totals(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    job = apply_change(two_vehicle_job, PartRemoved(vehicle_id=sedan.id, part_id=sedan_part.id))
    assert sedan.parts == []
    assert job.total_due == 389

    job = apply_change(job, VehicleRemoved(vehicle_id=suv.id))
    assert [v.id for v in job.vehicles] == [sedan.id]
    assert job.total_due == 0
    assert job.balance_due == 0


def test_added_vehicle_parts_are_totalled():
    job = Job(customer_type="dealer")
    vehicle = Vehicle(parts=[Part(urethane_price=0, sales_tax_percent=0, labor_price=90, part_total=1)])
    apply_change(job, VehicleAdded(vehicle=vehicle))
    assert vehicle.parts[0].part_total == 90
    assert job.total_due == 90


def test_payments(two_vehicle_job):
    total = two_vehicle_job.total_due

    job = apply_change(two_vehicle_job, PaymentAdded(payment=PaymentEntry(amount=100, source="check")))
    assert job.amount_paid == 100
    assert job.balance_due == total - 100
    assert job.payment_status == "partial"

    job = apply_change(job, PaymentAdded(payment=PaymentEntry(amount=total)))
    assert len(job.payment_history) == 2
    assert job.amount_paid == total + 100
    assert job.balance_due == 0
    assert job.payment_status == "paid"


def test_payment_fields(two_vehicle_job):
    job = apply_change(two_vehicle_job, PaymentFieldChanged(field="amountPaid", value=50))
    assert job.balance_due == job.total_due - 50

    job = apply_change(job, PaymentFieldChanged(field="rebate", value=25))
    assert job.rebate == 25

    with pytest.raises(ValueError):
        apply_change(job, PaymentFieldChanged(field="deductible", value=-5))


def test_changes_parse_from_json(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    change = TypeAdapter(FieldChange).validate_python({
        "kind": "part_field",
        "vehicleId": sedan.id,
        "partId": sedan_part.id,
        "field": "partPrice",
        "value": "300",
    })
    assert isinstance(change, PartFieldChanged)
    apply_change(two_vehicle_job, change)
    assert sedan_part.part_price == 300
    assert sedan_part.labor_price == 225


def test_recalculate_job_can_reprice_labor(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    _edit_part(two_vehicle_job, sedan, sedan_part, "labor_price", 10)

    recalculate_job(two_vehicle_job)
    assert sedan_part.labor_price == 10

    recalculate_job(two_vehicle_job, reprice_labor=True)
    assert sedan_part.labor_price == 150


def test_add_part_helper_matches_fixture():
    job = Job()
    vehicle = Vehicle(vehicle_year="2022", body_style="SUV")
    apply_change(job, VehicleAdded(vehicle=vehicle))
    part = add_part(job, vehicle, part_price=150, markup=20)
    assert part.part_total == 389


def test_any_change_recomputes_stale_totals_on_other_parts(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    suv_part.part_total = 1
    suv_part.parts_subtotal = 1

    _edit_part(two_vehicle_job, sedan, sedan_part, "distributor", "Pilkington")
    assert suv_part.part_total == 389
    assert suv_part.parts_subtotal > 1
    assert two_vehicle_job.total_due == sedan_part.part_total + 389


def test_old_crossover_utility_skips_legacy_labor(two_vehicle_job):
    sedan, sedan_part, suv, suv_part = _parts(two_vehicle_job)
    apply_change(two_vehicle_job, VehicleFieldChanged(vehicle_id=sedan.id, field="vehicle_year", value="2015"))
    assert sedan_part.labor_price == 140

    apply_change(
        two_vehicle_job,
        VehicleFieldChanged(vehicle_id=sedan.id, field="body_style", value="Crossover Utility Vehicle (CUV)"),
    )
    assert sedan_part.labor_price == 165
