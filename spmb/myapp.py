# ===================================================================
# 1. IMPORTS
# ===================================================================
import os
import base64
import calendar
import logging
from pathlib import Path
from nicegui import ui, app
from typing import Any, cast
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime

# Local application imports
from . import para
from .form_data_builder import RegistrationRecord, Other, is_other
from .regions import LocalRegionDataset, RegionCascade, WilayahApiClient, DEFAULT_API_BASE
from .step_definitions import STEPS_BY_ID
from .summary import build_summary, save_for_print, load_for_print, load_region_names, format_address
from .summary_pdf import render_summary_pdf
from .utils import (
    AppSchema, FormField, StepDefinition, LAST_STEP, STEP_ERROR_PREFIX,
    apply_transform, number_from_input,
)
from .validation import DATE_FORMAT_STORAGE
from .wizard import WizardController, StepStatus

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# ===================================================================
# 2. CONFIGURATION & SHARED SERVICES
# ===================================================================

PROJECT_ROOT: Path = Path(__file__).resolve().parent
PROVINCES_PATH: Path = PROJECT_ROOT / "data" / "provinces.json"
WILAYAH_API_BASE: str = os.environ.get('WILAYAH_API_BASE', DEFAULT_API_BASE)
PDF_FILENAME: str = "Formulir_SPMB.pdf"

_region_client: WilayahApiClient | None = None

def get_region_client() -> WilayahApiClient:
    """One API client (and one response cache) for the whole process."""
    global _region_client
    if _region_client is None:
        _region_client = WilayahApiClient(
            base_url=WILAYAH_API_BASE,
            local_provinces=LocalRegionDataset(PROVINCES_PATH),
        )
        logger.info(f"Region lookups go to {WILAYAH_API_BASE}")
    return _region_client

async def close_region_client() -> None:
    global _region_client
    if _region_client is not None:
        await _region_client.aclose()
        _region_client = None

app.on_shutdown(close_region_client)

# ===================================================================
# 3. PER-TAB STATE
# ===================================================================

def get_wizard() -> WizardController:
    """The wizard of the current browser tab (created on first access)."""
    client_storage = cast(dict[str, Any], app.storage.client)
    wizard = client_storage.get('wizard')
    if wizard is None:
        wizard = WizardController(on_submitted=_on_submitted, on_validation_failed=_on_validation_failed)
        client_storage['wizard'] = wizard
    return cast(WizardController, wizard)

def get_cascade() -> RegionCascade:
    client_storage = cast(dict[str, Any], app.storage.client)
    cascade = client_storage.get('cascade')
    if cascade is None:
        cascade = RegionCascade(get_region_client(), get_wizard().record.student,
                                on_change=render_region_block.refresh)
        client_storage['cascade'] = cascade
    return cast(RegionCascade, cascade)

def _on_submitted(record: RegistrationRecord) -> None:
    save_for_print(cast(dict[str, Any], app.storage.user), record, get_cascade().region_names())
    logger.info(f"Registration for '{record.student.full_name}' saved to the print slot.")
    ui.notify("Pendaftaran berhasil dikirim!", type='positive')
    ui.navigate.to('/print')

def _on_validation_failed(errors: dict[str, str]) -> None:
    ui.notify("Masih ada data yang belum valid. Silakan periksa kembali.", type='negative')
    for error_message in errors.values():
        ui.notification(error_message, type='negative', multi_line=True, timeout=6)

# ===================================================================
# 4. UI CREATION HELPERS
# ===================================================================

def _set_and_refresh(key: str, value: Any) -> None:
    get_wizard().record.set(key, value)
    update_step_content.refresh()

def _error_props(error_message: str | None, extra: list[str] | None = None) -> str:
    props_list: list[str] = ['outlined', 'dense'] + (extra or [])
    if error_message:
        props_list.append(f'error-message="{error_message}"')
        props_list.append('error')
    return ' '.join(props_list)

def _create_composite_date_input(field: FormField, record: RegistrationRecord, error_message: str | None) -> None:
    """
    Day / month / year selects kept in sync with one dd/mm/yyyy string.
    The day is capped to the length of the chosen month.
    """
    stored_value = record.get(field.key)
    d, m, y = None, None, None
    if isinstance(stored_value, str):
        try:
            dt_obj = datetime.strptime(stored_value, DATE_FORMAT_STORAGE).date()
            d, m, y = dt_obj.day, dt_obj.month, dt_obj.year
        except ValueError:
            pass
    state: dict[str, int | None] = {'d': d, 'm': m, 'y': y}

    def sync_model() -> None:
        if not (state['d'] and state['m'] and state['y']):
            record.set(field.key, None)
            return
        record.set(field.key, date(state['y'], state['m'], state['d']).strftime(DATE_FORMAT_STORAGE))

    @ui.refreshable
    def day_select_container() -> None:
        def handle_day_change(e: Any) -> None:
            state['d'] = e.value
            sync_model()
        is_error = bool(error_message) and not state['d']
        ui.select(list(range(1, 32)), value=state['d'], label='Tanggal',
                  on_change=handle_day_change).classes('col').props(f"outlined dense error={is_error}")

    def handle_month_year_change() -> None:
        if state['y'] and state['m']:
            max_days = calendar.monthrange(state['y'], state['m'])[1]
            if state['d'] and state['d'] > max_days:
                state['d'] = max_days
        day_select_container.refresh()
        sync_model()

    def handle_month_select(e: Any) -> None:
        state['m'] = e.value
        handle_month_year_change()

    def handle_year_select(e: Any) -> None:
        state['y'] = e.value
        handle_month_year_change()

    month_options = {i + 1: name for i, name in enumerate(para.month_names_id)}
    with ui.column().classes('w-full no-wrap'):
        ui.label(field.label).classes('text-caption q-mb-xs')
        with ui.row().classes('w-full items-start no-wrap'):
            day_select_container()
            is_m_error = bool(error_message) and not state['m']
            ui.select(month_options, value=state['m'], label='Bulan',
                      on_change=handle_month_select).classes('col').props(f"outlined dense error={is_m_error}")
            is_y_error = bool(error_message) and not state['y']
            ui.select(list(range(date.today().year, 1999, -1)), value=state['y'], label='Tahun',
                      on_change=handle_year_select).classes('col').props(f"outlined dense error={is_y_error}")
        if error_message:
            ui.label(error_message).classes('text-negative text-caption')

def _create_text_input(f: FormField, v: Any, record: RegistrationRecord) -> ui.input:
    def handle_change(e: Any) -> None:
        record.set(f.key, apply_transform(f, e.value or ''))
    return ui.input(label=f.label, value=v or '', placeholder=f.placeholder, on_change=handle_change)

def _create_number_input(f: FormField, v: Any, record: RegistrationRecord) -> ui.number:
    def handle_change(e: Any) -> None:
        record.set(f.key, number_from_input(e.value))
    return ui.number(label=f.label, value=v, placeholder=f.placeholder, on_change=handle_change)

def _create_phone_input(f: FormField, v: Any, record: RegistrationRecord) -> ui.input:
    element = ui.input(label=f.label, value=v or '', placeholder=f.placeholder,
                       on_change=lambda e: record.set(f.key, (e.value or '').strip()))
    element.props('prefix="+62" type=tel')
    return element

def _create_radio_buttons(f: FormField, v: Any, record: RegistrationRecord) -> ui.radio:
    ui.label(f.label).classes('text-caption')
    return ui.radio(options=f.options or [], value=v,
                    on_change=lambda e: record.set(f.key, e.value)).props('inline')

def _create_checkbox_input(f: FormField, v: Any, record: RegistrationRecord) -> ui.checkbox:
    return ui.checkbox(text=f.label, value=bool(v), on_change=lambda e: _set_and_refresh(f.key, bool(e.value)))

def _create_select_input(f: FormField, v: Any, record: RegistrationRecord) -> ui.select:
    """A dropdown; picking the 'Lainnya' option stores an Other and reveals a detail input."""
    shown = f.other_option if is_other(v) else v

    def handle_change(e: Any) -> None:
        if f.other_option and e.value == f.other_option:
            if not is_other(record.get(f.key)):
                _set_and_refresh(f.key, Other())
            return
        was_other = is_other(record.get(f.key))
        record.set(f.key, e.value)
        if was_other:
            update_step_content.refresh()

    return ui.select(options=f.options or [], label=f.label, value=shown, on_change=handle_change)

def _create_other_detail_input(f: FormField, record: RegistrationRecord) -> None:
    value = record.get(f.key)
    items = value if isinstance(value, list) else [value]
    current = next((item for item in items if isinstance(item, Other)), None)
    if current is None:
        return

    def handle_change(e: Any) -> None:
        detail = Other(e.value or '')
        existing = record.get(f.key)
        if isinstance(existing, list):
            record.set(f.key, [detail if isinstance(item, Other) else item for item in existing])
        else:
            record.set(f.key, detail)

    error_message = get_wizard().error_for(f.detail_key)
    ui.input(label=f"Sebutkan {f.label.lower()} lainnya", value=current.detail,
             on_change=handle_change).props(_error_props(error_message)).classes('w-full q-ml-md')

def _create_transport_checklist(f: FormField, record: RegistrationRecord, error_message: str | None) -> None:
    options = cast(dict[str, str], f.options or {})
    selected: list[str | Other] = list(record.student.transport)

    def toggle(option_id: str, checked: bool) -> None:
        items = [item for item in record.student.transport
                 if not (item == option_id or (option_id == f.other_option and isinstance(item, Other)))]
        if checked:
            items.append(Other() if option_id == f.other_option else option_id)
        _set_and_refresh(f.key, items)

    ui.label(f.label).classes('text-caption')
    with ui.row().classes('w-full'):
        for option_id, label in options.items():
            checked = any(isinstance(item, Other) for item in selected) if option_id == f.other_option \
                else option_id in selected
            ui.checkbox(label, value=checked,
                        on_change=lambda e, oid=option_id: toggle(oid, bool(e.value)))
    if error_message:
        ui.label(error_message).classes('text-negative text-caption')

def create_field(field_definition: FormField, label_suffix: str = '') -> None:
    """Creates the UI element for one FormField, bound to the current record."""
    wizard = get_wizard()
    record = wizard.record
    current_value = record.get(field_definition.key)
    error_message = wizard.error_for(field_definition.key)
    if label_suffix:
        field_definition = replace(field_definition, label=f"{field_definition.label}{label_suffix}")

    with ui.column().classes('w-full no-wrap q-mb-sm'):
        if field_definition.ui_type == 'date':
            _create_composite_date_input(field_definition, record, error_message)
            return
        if field_definition.ui_type == 'checklist':
            _create_transport_checklist(field_definition, record, error_message)
            _create_other_detail_input(field_definition, record)
            return

        creator_map: dict[str, Callable[..., Any]] = {
            'text': _create_text_input,
            'number': _create_number_input,
            'phone': _create_phone_input,
            'select': _create_select_input,
            'radio': _create_radio_buttons,
            'checkbox': _create_checkbox_input,
        }
        creator = creator_map.get(field_definition.ui_type)
        if not creator: raise ValueError(f"Unsupported UI type: {field_definition.ui_type}")

        element = creator(field_definition, current_value, record)
        if field_definition.ui_type not in ('checkbox', 'radio'):
            extra = [f"maxlength={field_definition.max_length}"] if field_definition.max_length else []
            element.props(_error_props(error_message, extra)).classes('w-full')
        elif error_message:
            ui.label(error_message).classes('text-negative text-caption')
        if field_definition.other_option:
            _create_other_detail_input(field_definition, record)

# ===================================================================
# 5. REGION SELECTORS
# ===================================================================

@ui.refreshable
def render_region_block() -> None:
    """Province -> regency -> district -> village, then the postal code."""
    cascade = get_cascade()
    wizard = get_wizard()
    S = AppSchema.Student

    async def on_province(e: Any) -> None:
        await cascade.select_province(e.value or '')
        render_region_block.refresh()

    async def on_regency(e: Any) -> None:
        await cascade.select_regency(e.value or '')
        render_region_block.refresh()

    async def on_district(e: Any) -> None:
        await cascade.select_district(e.value or '')
        render_region_block.refresh()

    def on_village(e: Any) -> None:
        cascade.select_village(e.value or '')
        render_region_block.refresh()

    handlers: list[tuple[FormField, str, Callable[..., Any]]] = [
        (S.PROVINCE, 'province', on_province),
        (S.REGENCY, 'regency', on_regency),
        (S.DISTRICT, 'district', on_district),
        (S.VILLAGE, 'village', on_village),
    ]
    previous_selected = True
    for f, level, handler in handlers:
        options = {region.code: region.name for region in cascade.options[level]}
        value = cascade.selected(level) or None
        select = ui.select(options, label=f.label, value=value if value in options else None,
                           with_input=True, on_change=handler)
        extra = ['loading'] if cascade.loading[level] else []
        select.props(_error_props(wizard.error_for(f.key), extra)).classes('w-full q-mb-sm')
        if not previous_selected:
            select.disable()
        previous_selected = bool(value)

    postal = S.POSTAL_CODE

    def on_postal(e: Any) -> None:
        if not cascade.set_postal_code((e.value or '').strip()):
            ui.notify("Kode pos mengikuti desa/kelurahan yang dipilih.", type='info')

    postal_input = ui.input(label=postal.label, value=cascade.postal_code, placeholder=postal.placeholder,
                            on_change=on_postal)
    extra = [f"maxlength={postal.max_length}"]
    if cascade.postal_code_locked:
        extra.append('readonly')
    postal_input.props(_error_props(wizard.error_for(postal.key), extra)).classes('w-full q-mb-sm')

    preview = format_address(cascade.student, cascade.region_names())
    if preview:
        ui.label(f"Alamat: {preview}").classes('text-caption text-grey-8')

# ===================================================================
# 6. STEP RENDERING
# ===================================================================

_STATUS_COLORS: dict[StepStatus, str] = {
    StepStatus.UNVALIDATED: 'grey-6',
    StepStatus.VALID: 'positive',
    StepStatus.INVALID: 'negative',
}

def render_step_chips() -> None:
    wizard = get_wizard()
    completion = wizard.completion
    with ui.row().classes('w-full justify-center q-mb-md q-gutter-sm'):
        for step_id, step_def in STEPS_BY_ID.items():
            status = completion[step_id]
            icon = 'check_circle' if status == StepStatus.VALID else \
                'error' if status == StepStatus.INVALID else 'radio_button_unchecked'
            chip = ui.button(f"{step_id}. {step_def['title']}", icon=icon,
                             on_click=lambda _, sid=step_id: go_to(sid))
            chip.props(f"dense no-caps color={_STATUS_COLORS[status]} "
                       f"{'unelevated' if step_id == wizard.current_step else 'outline'}")

def _section_hidden_fields(step_def: StepDefinition, record: RegistrationRecord) -> set[str]:
    """Keys of fields a deceased parent does not fill in."""
    section = step_def['name']
    if section in ('father', 'mother') and record.get(f'{section}.is_deceased'):
        return {f.key for f in AppSchema.get_all_fields() if f.section == section and f.deceased_exempt}
    return set()

def _fields_for_step(step_def: StepDefinition) -> list[FormField]:
    if step_def['name'] == 'student':
        return [f for f in vars(AppSchema.Student).values() if isinstance(f, FormField)]
    parent_fields = {'father': AppSchema.Father, 'mother': AppSchema.Mother, 'guardian': AppSchema.Guardian}
    pf = parent_fields.get(step_def['name'])
    if pf is None:
        return [conf['field'] for conf in step_def['fields']]
    ordered = [pf.IS_DECEASED] if step_def['name'] != 'guardian' else [AppSchema.Guardian.RELATIONSHIP]
    ordered += [pf.NAME, pf.NIK, pf.BIRTH_YEAR, pf.EDUCATION, pf.OCCUPATION, pf.INCOME]
    return ordered

def render_generic_step(step_def: StepDefinition) -> None:
    wizard = get_wizard()
    record = wizard.record
    ui.label(step_def['title']).classes('text-h6 q-mb-xs')
    ui.markdown(step_def['subtitle'])

    if step_def['name'] == 'guardian' and wizard.guardian_required:
        ui.label("Kedua orang tua telah meninggal dunia: data wali WAJIB diisi.").classes(
            'text-negative text-bold q-mb-sm')

    step_error = wizard.error_for(f"{STEP_ERROR_PREFIX}{step_def['id']}")
    if step_error:
        ui.label(step_error).classes('text-negative q-mb-sm')

    hidden = _section_hidden_fields(step_def, record)
    region_rendered = False
    for f in _fields_for_step(step_def):
        if f.key in hidden:
            continue
        if f.ui_type in ('region', 'postal_code'):
            if not region_rendered:
                render_region_block()
                region_rendered = True
            continue
        suffix = ' *' if step_def['name'] == 'guardian' and wizard.guardian_required and f.attr == 'name' else ''
        create_field(f, label_suffix=suffix)

def render_contact_and_review_step(step_def: StepDefinition) -> None:
    """Phones for whoever can be reached, then the full summary and the submit button."""
    wizard = get_wizard()
    record = wizard.record
    render_generic_step({**step_def, 'name': 'contact', 'fields': []})
    for pf in (AppSchema.Father, AppSchema.Mother, AppSchema.Guardian):
        if pf.section != 'guardian' and record.get(f'{pf.section}.is_deceased'):
            ui.label(f"{pf.title}: {para.DECEASED_LABEL}").classes('text-grey q-mb-sm')
            continue
        create_field(replace(pf.PHONE, label=f"{pf.PHONE.label} {pf.title}"))

    ui.separator().classes('q-my-md')
    ui.label("Ringkasan Data").classes('text-h6')
    for section in build_summary(record, get_cascade().region_names()):
        with ui.card().classes('w-full q-mb-sm').props('flat bordered'):
            ui.label(section.title).classes('text-bold')
            if section.note:
                ui.label(section.note).classes('text-italic text-grey')
            for label, value in section.rows:
                with ui.row().classes('w-full no-wrap'):
                    ui.label(label).classes('col-4 text-grey-8')
                    ui.label(value).classes('col')

@ui.refreshable
def update_step_content() -> None:
    wizard = get_wizard()
    render_step_chips()
    step_to_render = STEPS_BY_ID.get(wizard.current_step)
    if not step_to_render:
        ui.label(f"Langkah tidak dikenal ({wizard.current_step})").classes('text-negative text-h6')
        return
    if step_to_render['name'] == 'contact':
        render_contact_and_review_step(step_to_render)
    else:
        render_generic_step(step_to_render)

    with ui.row().classes('w-full q-mt-lg justify-between items-center'):
        if wizard.current_step > 1:
            ui.button("← Sebelumnya", on_click=prev_step).props('flat color=grey')
        else:
            ui.label()
        if wizard.current_step < LAST_STEP:
            ui.button("Selanjutnya →", on_click=next_step).props('color=primary unelevated')
        else:
            submit_button = ui.button("Kirim Pendaftaran").props('color=positive unelevated icon=send')
            submit_button.on('click', lambda: submit_form(submit_button))

# ===================================================================
# 7. NAVIGATION
# ===================================================================

def _report_status(step: int, status: StepStatus | None) -> None:
    if status == StepStatus.INVALID:
        ui.notify(f"Langkah {step} belum lengkap. Anda tetap dapat melanjutkan.", type='warning')

def next_step() -> None:
    wizard = get_wizard()
    step = wizard.current_step
    _report_status(step, wizard.advance())
    update_step_content.refresh()

def prev_step() -> None:
    get_wizard().retreat()
    update_step_content.refresh()

def go_to(step_id: int) -> None:
    wizard = get_wizard()
    step = wizard.current_step
    _report_status(step, wizard.jump_to(step_id))
    update_step_content.refresh()

async def submit_form(button: ui.button) -> None:
    button.disable()
    try:
        if not get_wizard().submit():
            update_step_content.refresh()
    finally:
        button.enable()

# ===================================================================
# 8. PDF
# ===================================================================

def _generate_pdf_bytes(record: RegistrationRecord, region_names: dict[str, str]) -> bytes | None:
    try:
        return render_summary_pdf(record, region_names)
    except (RuntimeError, ValueError) as e:
        logger.error(f"PDF generation failed: {e}", exc_info=True)
        ui.notify(f"Gagal membuat PDF. Detail: {e}", type='negative', multi_line=True)
        return None

# ===================================================================
# 9. PAGE ROUTING
# ===================================================================

@ui.page('/print')
def print_page() -> None:
    user_storage = cast(dict[str, Any], app.storage.user)
    record = load_for_print(user_storage)
    if record is None:
        with ui.card().classes('absolute-center'):
            ui.label("Data tidak ditemukan. Silakan isi formulir terlebih dahulu.")
            ui.button("Kembali ke formulir", on_click=lambda: ui.navigate.to('/')).classes('w-full')
        return
    region_names = load_region_names(user_storage)

    def download_pdf() -> None:
        pdf_bytes = _generate_pdf_bytes(record, region_names)
        if pdf_bytes:
            ui.download(pdf_bytes, PDF_FILENAME)

    def preview_pdf() -> None:
        pdf_bytes = _generate_pdf_bytes(record, region_names)
        if not pdf_bytes:
            return
        data_url = f"data:application/pdf;base64,{base64.b64encode(pdf_bytes).decode('utf-8')}"
        preview_container.clear()
        with preview_container:
            ui.html(f'<iframe src="{data_url}" style="width: 100%; height: 100%; border: none;"></iframe>') \
                .classes('h-full w-full')

    with ui.row().classes('w-full justify-end q-pa-sm print-hide'):
        ui.button("Kembali", on_click=lambda: ui.navigate.to('/')).props('flat color=grey')
        ui.button("Cetak", on_click=lambda: ui.run_javascript('window.print()')).props('icon=print unelevated')
        ui.button("Pratinjau PDF", on_click=preview_pdf).props('icon=visibility outline')
        ui.button("Unduh PDF", on_click=download_pdf).props('color=green unelevated icon=download')

    with ui.column().classes('w-full items-center'):
        with ui.card().classes('q-pa-lg').style('width: 95%; max-width: 900px;'):
            ui.label("FORMULIR PENDAFTARAN PESERTA DIDIK BARU").classes('text-h6 self-center')
            for section in build_summary(record, region_names):
                ui.label(section.title).classes('text-bold q-mt-md')
                ui.separator()
                if section.note:
                    ui.label(section.note).classes('text-italic')
                for label, value in section.rows:
                    with ui.row().classes('w-full no-wrap'):
                        ui.label(label).classes('col-4')
                        ui.label(f": {value}").classes('col')
        preview_container = ui.card().classes('shadow-2 q-mt-md').style(
            'width: 95%; max-width: 900px; height: 80vh; padding: 0;')

@ui.page('/')
async def main_page() -> None:
    await get_cascade().load_provinces()

    ui.query('body').style('background-color: #f0f2f5;')
    with ui.header(elevated=True).classes('bg-primary text-white q-pa-sm items-center'):
        ui.label("Pendaftaran Peserta Didik Baru").classes('text-h5')
        ui.space()
        ui.button('Formulir Baru', on_click=reset_form, color='white', icon='restart_alt').props('flat dense')

    with ui.column().classes('w-full items-center q-py-md'):
        with ui.card().classes('q-pa-md shadow-4').style('width: 95%; max-width: 900px;'):
            with ui.column().classes('w-full'):
                update_step_content()

def reset_form() -> None:
    wizard = get_wizard()
    wizard.reset()
    get_cascade().reset(wizard.record.student)
    update_step_content.refresh()

def main() -> None:
    port = int(os.environ.get('PORT', 8080))
    ui.run(
        host='0.0.0.0',
        port=port,
        title='SPMB',
        storage_secret=os.environ.get('STORAGE_SECRET', 'a_very_secure_secret_key_for_local_dev'),
    )

if __name__ in {"__main__", "__mp_main__"}:
    main()
