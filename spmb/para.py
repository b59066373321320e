from typing import List

OTHER_OPTION: str = "Lainnya"

gender: List[str] = [
    "Laki-laki",
    "Perempuan"
]

religion: List[str] = [
    "Islam",
    "Kristen/Protestan",
    "Katolik",
    "Hindu",
    "Budha",
    "Khonghucu",
    "Lainnya"
]

residence: List[str] = [
    "Bersama orang tua",
    "Wali",
    "Kos",
    "Asrama",
    "Panti Asuhan",
    "Lainnya"
]

# id -> label; 'lainnya' carries a free-text detail
transport: dict[str, str] = {
    "jalan_kaki": "Jalan kaki",
    "kendaraan_pribadi": "Kendaraan pribadi",
    "kendaraan_umum_angkot": "Kendaraan umum/angkot",
    "jemputan_sekolah": "Jemputan sekolah",
    "lainnya": "Lainnya",
}

education: List[str] = [
    "Tidak sekolah",
    "Putus SD",
    "SD Sederajat",
    "SMP Sederajat",
    "SMA Sederajat",
    "D1",
    "D2",
    "D3",
    "D4/S1",
    "S2",
    "S3",
    "Lainnya"
]

occupation: List[str] = [
    "Tidak bekerja",
    "Nelayan",
    "Petani",
    "Peternak",
    "PNS/TNI/POLRI",
    "Karyawan Swasta",
    "Pedagang Kecil",
    "Pedagang Besar",
    "Wiraswasta",
    "Buruh",
    "Pensiunan",
    "Lainnya"
]

income: List[str] = [
    "Kurang dari 500.000",
    "500.000 - 999.999",
    "1.000.000 - 1.999.999",
    "2.000.000 - 4.999.999",
    "5.000.000 - 20.000.000",
    "Lebih dari 20.000.000",
    "Tidak Berpenghasilan"
]

GUARDIAN_OTHER_OPTION: str = "Lainnya (tuliskan)"

guardian_relationship: List[str] = [
    "Kakek",
    "Nenek",
    "Paman",
    "Bibi",
    "Kakak Kandung",
    "Ayah Tiri",
    "Ibu Tiri",
    "Orang Tua Asuh",
    "Lainnya (tuliskan)"
]

DECEASED_LABEL: str = "Meninggal Dunia"

month_names_id: List[str] = [
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember"
]
