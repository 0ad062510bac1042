"""Default category tree seeded for new users.

Each label is a ``(vi, en)`` pair; the configured locale picks one.
"""

DEFAULT_EXPENSE_CATEGORIES: list[dict[str, object]] = [
    {
        "name": ("🏡 Gia đình", "🏡 Family"),
        "children": [
            ("Sửa & trang trí nhà", "Home improvement & decor"),
            ("Điện nước wifi nhà", "Home electricity, water & wifi"),
            ("Con cái", "Children"),
            ("Sửa chữa nhà cửa", "Home repairs"),
            ("Báo Hiếu", "Support for parents"),
            ("Em Gái", "Younger sister"),
        ],
    },
    {
        "name": ("❤️ Sức khỏe", "❤️ Health"),
        "children": [
            ("Làm đẹp", "Beauty"),
            ("Khám sức khoẻ", "Medical checkups"),
            ("Chăm sóc cá nhân (hớt tóc..)", "Personal care (haircuts..)"),
            ("Thuốc", "Medicine"),
            ("Thể thao", "Sports"),
        ],
    },
    {
        "name": ("🎓 Giáo dục", "🎓 Education"),
        "children": [
            ("Sách", "Books"),
            ("Học Phí", "Tuition"),
        ],
    },
    {
        "name": ("🕹️ Giải trí", "🕹️ Entertainment"),
        "children": [
            ("Dịch vụ trực tuyến", "Online services"),
            ("Ăn chơi nhậu nhẹt 🍻", "Going out 🍻"),
            ("Cà phê", "Coffee shops"),
            ("Trò chơi", "Games"),
            ("Phim ảnh", "Movies"),
            ("Mua vé số", "Lottery tickets"),
            ("Bet", "Betting"),
        ],
    },
    {"name": ("🛡️ Bảo hiểm", "🛡️ Insurance"), "children": []},
    {"name": ("📈 Đầu tư", "📈 Investments"), "children": []},
    {
        "name": ("🚗 Di chuyển", "🚗 Transport"),
        "children": [
            ("Bảo dưỡng xe", "Vehicle maintenance"),
            ("Gửi xe", "Parking"),
            ("Xăng dầu", "Fuel"),
            ("Taxi", "Taxi"),
        ],
    },
    {
        "name": ("🛍️ Mua sắm", "🛍️ Shopping"),
        "children": [
            ("Đồ dùng cá nhân", "Personal items"),
            ("Đồ gia dụng", "Household goods"),
            ("Phụ kiện", "Accessories"),
            ("Quần áo", "Clothing"),
            ("Thiết bị điện tử", "Electronics"),
        ],
    },
    {
        "name": ("🍜 Ăn uống", "🍜 Food & drink"),
        "children": [
            ("Nhà hàng", "Restaurants"),
            ("Mua mì, trứng, nước...", "Groceries"),
            ("Ăn Chiều, Tối", "Dinner"),
            ("Ăn Sáng", "Breakfast"),
            ("Ăn Trưa", "Lunch"),
            ("Cafe", "Cafe"),
        ],
    },
    {
        "name": ("🧾 Hoá đơn & Tiện ích", "🧾 Bills & utilities"),
        "children": [
            ("Hoá đơn điện thoại", "Phone bill"),
            ("Hoá đơn nước", "Water bill"),
            ("Hoá đơn điện", "Electricity bill"),
            ("Hoá đơn gas", "Gas bill"),
            ("Hoá đơn TV", "TV bill"),
            ("Hoá đơn internet", "Internet bill"),
            ("Thuê nhà", "Rent"),
        ],
    },
    {
        "name": ("💸 Chi phí", "💸 Expenses"),
        "children": [
            ("Quà tặng & Quyên góp", "Gifts & donations"),
            ("Tang lễ", "Funerals"),
            ("Cưới hỏi", "Weddings"),
            ("Chi Phí Tết", "Lunar New Year costs"),
            ("Đóng Quỹ, Party...", "Group funds, parties..."),
        ],
    },
    {
        "name": ("👩‍❤️‍👨 Bạn bè & Người yêu", "👩‍❤️‍👨 Friends & partner"),
        "children": [
            ("Mua Sắm", "Shopping together"),
            ("Quà Cáp", "Presents"),
            ("Ăn Uống", "Eating out together"),
            ("Du lịch với nhau", "Trips together"),
        ],
    },
    {
        "name": ("✈️ Du lịch", "✈️ Travel"),
        "children": [
            ("Khách sạn", "Hotels"),
            ("Ăn chơi", "Leisure"),
            ("Di chuyển. Thuê xe", "Getting around, car rental"),
            ("Vé máy bay", "Flights"),
            ("Mua đồ lặt vặt", "Odds and ends"),
        ],
    },
    {"name": ("🔄 Chuyển tiền qua lại", "🔄 Money transfers"), "children": []},
    {
        "name": ("🎉 Sự kiện", "🎉 Events"),
        "children": [
            ("Lì Xì", "Lucky money"),
            ("Tiền Biểu", "Gifts to elders"),
            ("Trước Tết", "Before Lunar New Year"),
            ("Ăn Chơi Tết", "Lunar New Year celebrations"),
            ("Quần áo tết 2 đứa", "New Year clothes"),
            ("Dưới quê (làm này làm kia)", "Hometown visits"),
        ],
    },
    {
        "name": ("🏦 Nợ nần", "🏦 Debt"),
        "children": [
            ("Nợ HSBC", "HSBC loan"),
            ("Nợ VIB", "VIB loan"),
            ("Nợ khác (momo...)", "Other debt (momo...)"),
        ],
    },
]

DEFAULT_INCOME_CATEGORIES: list[dict[str, object]] = [
    {
        "name": ("💰 Lương", "💰 Salary"),
        "children": [
            ("Lương cứng", "Base salary"),
            ("Freelance", "Freelance"),
            ("OT", "Overtime"),
        ],
    },
    {"name": ("🛒 Bán hàng", "🛒 Sales"), "children": []},
    {"name": ("💵 Thu nhập khác", "💵 Other income"), "children": []},
]

LOCALES = ("vi", "en")


def label(pair: tuple[str, str], locale: str) -> str:
    return pair[LOCALES.index(locale)] if locale in LOCALES else pair[0]
