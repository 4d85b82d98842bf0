PROMPT_CATEGORIES: dict[str, str] = {
    "all": "Todas",
    "food": "Comida",
    "love": "Amor y Citas",
    "work": "Trabajo",
    "absurd": "Absurdo",
    "pop-culture": "Cultura Pop",
    "spicy": "Picante (+18)",
}

DEFAULT_PROMPTS: dict[str, list[str]] = {
    "food": [
        "El peor ingrediente secreto para una paella",
        "Un sabor de helado que nadie pidió",
        "Lo que realmente lleva la salsa de un kebab a las 4 de la mañana",
        "El nombre de un restaurante que te quita el hambre",
        "Lo que dice tu nevera de ti",
        "Un plato típico de un país que no existe",
        "La peor cosa para encontrar en un bocadillo",
        "El menú del día en el infierno",
    ],
    "love": [
        "La peor forma de pedir matrimonio",
        "Un regalo de aniversario que garantiza la ruptura",
        "Lo que nunca debes decir en una primera cita",
        "El título de la canción de tu última ruptura",
        "La excusa más rara para no contestar un mensaje",
        "Lo que realmente significa 'tenemos que hablar'",
        "Un plan romántico diseñado por un robot",
        "La frase que arruina cualquier declaración de amor",
    ],
    "work": [
        "Lo que realmente hace tu jefe en las reuniones",
        "Una excusa para llegar tarde que nadie puede rebatir",
        "El peor nombre para una empresa de seguros",
        "Lo que nunca deberías poner en tu currículum",
        "Un nuevo departamento que toda oficina necesita",
        "El correo que mandarías el último día de trabajo",
        "La frase motivacional de una empresa que va a quebrar",
        "Lo que pasa en la máquina de café cuando nadie mira",
    ],
    "absurd": [
        "Lo que piensan las palomas de nosotros",
        "El superpoder más inútil del mundo",
        "Una ley nueva que aprobarían los gatos",
        "Lo que encontrarías en el bolso de un unicornio",
        "El deporte olímpico del año 3000",
        "Lo que grita un pez cuando nadie lo escucha",
        "Un invento que arreglaría los lunes",
        "La peor mascota para un astronauta",
        "Lo primero que diría un calcetín perdido al volver",
        "El nombre de la banda de rock de tus abuelos",
    ],
    "pop-culture": [
        "El peor título para una película de superhéroes",
        "Un reality show que nadie debería ver",
        "La canción del verano de los dinosaurios",
        "Lo que realmente había en la maleta de Pulp Fiction",
        "El spoiler más decepcionante de una serie",
        "Un nuevo personaje para una telenovela de sobremesa",
        "El meme que explicaría la humanidad a los extraterrestres",
        "La secuela que nadie pidió",
    ],
    "spicy": [
        "Un mensaje de texto que enviarías a tu ex a las 3 de la mañana",
        "La excusa más creativa para salir de una cita que va fatal",
        "La frase que menos querrías escuchar de tu suegra en Navidad",
        "Un tatuaje íntimo que nunca deberías hacerte",
        "La peor frase para ligar en un funeral",
        "Un mensaje de Tinder que te asegura el bloqueo inmediato",
        "Una bio de Tinder que grita 'red flag'",
        "Algo que nunca le contarías a tu psicólogo",
    ],
}
